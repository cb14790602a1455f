"""
mock_notification_gateway.py — Mock Implementation of the Notification Gateway

This module simulates the e-mail/SMS gateway that receives sale confirmations
from the sales service via RabbitMQ and "delivers" them by logging.

Purpose:
    • Simulate at-least-once delivery of customer notifications
    • Test the end-to-end sale fulfillment workflow
    • Reject malformed messages so they end up in a Dead Letter Queue

Communication Channels:
    - Input Queue:  'sales.notifications'   ← Receives confirmation messages
"""

import json
import logging
import os
import time

import pika

logging.basicConfig(level=logging.INFO)
RABBITMQ_HOST = os.environ.get("RABBITMQ_HOST", "localhost")
NOTIFICATION_QUEUE = os.environ.get("NOTIFICATION_QUEUE", "sales.notifications")
REQUIRED_FIELDS = ("recipient", "subject", "body")

# Messages delivered so far, newest last
delivered = []


# Connection Utilities
def get_mq_connection():
    """
    Establishes and returns a connection to the RabbitMQ message broker.

    Uses the credentials from `RABBITMQ_USER` / `RABBITMQ_PASSWORD` and the
    host defined by the `RABBITMQ_HOST` environment variable.

    Returns:
        pika.BlockingConnection: Active connection to the RabbitMQ broker.

    Raises:
        pika.exceptions.AMQPConnectionError: If the broker is unavailable.
    """
    credentials = pika.PlainCredentials(
        os.environ.get("RABBITMQ_USER", "guest"), os.environ.get("RABBITMQ_PASSWORD", "guest")
    )
    return pika.BlockingConnection(
        pika.ConnectionParameters(host=RABBITMQ_HOST, credentials=credentials)
    )


def deliver(message: dict):
    """Simulates sending the e-mail/SMS."""
    delivered.append(message)
    logging.info(f"[NG] Delivered '{message['subject']}' to {message['recipient']}.")


def on_notification_received(ch, method, properties, body):
    """
    Callback function triggered when a new message arrives on the notification queue.

    Args:
        ch (BlockingChannel): The RabbitMQ channel object.
        method (pika.spec.Basic.Deliver): Delivery metadata for acknowledgment.
        properties (pika.BasicProperties): Message properties.
        body (bytes): The raw message payload in JSON format.

    Behavior:
        - Delivers well-formed notifications and acknowledges them.
        - Rejects malformed messages to Dead Letter Queue (DLQ).
    """
    try:
        message = json.loads(body)
        if not isinstance(message, dict):
            raise ValueError("message is not a JSON object")
        missing = [name for name in REQUIRED_FIELDS if not message.get(name)]
        if missing:
            raise ValueError(f"missing fields: {', '.join(missing)}")
        deliver(message)
        ch.basic_ack(delivery_tag=method.delivery_tag)
    except ValueError as e:
        logging.error(f"[NG] Invalid notification message: {e}")
        ch.basic_nack(delivery_tag=method.delivery_tag, requeue=False)  # -> DLQ (if configured)


def main():
    """
    Starts the mock gateway consumer loop.

    Behavior:
        - Establishes a RabbitMQ connection.
        - Waits for incoming messages.
        - Automatically retries connection every 5 seconds if lost.
        - Stops gracefully on keyboard interrupt (Ctrl+C).
    """
    logging.info("Mock Notification Gateway (MQ) starting...")
    while True:
        try:
            connection = get_mq_connection()
            channel = connection.channel()
            channel.queue_declare(queue=NOTIFICATION_QUEUE, durable=True)

            logging.info(f"[NG] Waiting for notifications on '{NOTIFICATION_QUEUE}'.")
            channel.basic_consume(queue=NOTIFICATION_QUEUE, on_message_callback=on_notification_received)
            channel.start_consuming()
        except pika.exceptions.AMQPConnectionError as e:
            logging.warning(f"MQ connection failed, retrying in 5s... {e}")
            time.sleep(5)
        except KeyboardInterrupt:
            break


if __name__ == '__main__':
    main()
