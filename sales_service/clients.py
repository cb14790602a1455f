"""
This module provides communication clients for external systems used by the sales service:
- Artifact Store (REST API) for proof-of-sale documents
- Notification Gateway (RabbitMQ) for customer confirmations
Each class encapsulates its protocol logic, error handling, and connection management.
"""

import json
import logging
import time
import uuid

import httpx
import pika

from . import config

log = logging.getLogger(__name__)


# --- Artifact Store Client (REST) ---
class ArtifactStoreClient:
    """
    Client for the Artifact Store (REST API).
    Uploads documents under a key inside a bucket and deletes them again during compensation.
    """
    def __init__(self, base_url=None, bucket=None, http_client=None):
        """
        Initializes the HTTP client with proper timeout configuration.

        Args:
            base_url (str, optional): Store address, defaults to `ARTIFACT_STORE_URL`.
            bucket (str, optional): Target bucket, defaults to `ARTIFACT_BUCKET`.
            http_client (httpx.Client, optional): Preconfigured client (e.g. for tests).
        """
        self.bucket = bucket or config.ARTIFACT_BUCKET
        if http_client is None:
            timeout_config = httpx.Timeout(5.0, read=8.0)
            http_client = httpx.Client(base_url=base_url or config.ARTIFACT_STORE_URL, timeout=timeout_config)
        self.client = http_client

    def close(self):
        """Closes the HTTP client session."""
        self.client.close()

    def _path(self, key: str) -> str:
        return f"/{self.bucket}/{key}"

    def put(self, key: str, data: bytes, content_type: str) -> str:
        """
        Stores a blob under the given key.
        Args:
            key (str): Object key inside the bucket.
            data (bytes): The content to store.
            content_type (str): MIME type of the content.
        Returns:
            str: Stable locator (URL) of the stored object.
        Raises:
            ValueError: If the store answers with a body that is not a JSON object.
            httpx.TimeoutException: If the store does not respond within the timeout.
            httpx.HTTPStatusError: If the store returns an error status (4xx or 5xx).
        """
        try:
            response = self.client.put(self._path(key), content=data, headers={"Content-Type": content_type})
            response.raise_for_status()
        except httpx.TimeoutException:
            log.error(f"[ArtifactStore] Timeout while uploading {key}. Upload state unknown.")
            raise
        except httpx.HTTPStatusError as e:
            log.error(f"[ArtifactStore] HTTP error {e.response.status_code} while uploading {key}.")
            raise

        body = response.json()
        if not isinstance(body, dict):
            log.error(f"[ArtifactStore] Unexpected response body for {key}: {body!r}")
            raise ValueError(f"Artifact store answered with a non-object body for {key}")
        location = body.get("location")
        if not location:
            location = str(self.client.base_url.join(self._path(key)))
        log.info(f"[ArtifactStore] Stored {key} ({len(data)} bytes) at {location}.")
        return location

    def delete(self, key: str):
        """
        Deletes a stored object. Used as compensation, an already missing object counts as deleted.
        Raises:
            httpx.HTTPError: If the store cannot be reached or refuses the deletion.
        """
        log.info(f"[ArtifactStore] Compensation: deleting {key}.")
        response = self.client.delete(self._path(key))
        if response.status_code == 404:
            log.warning(f"[ArtifactStore] {key} was already gone.")
            return
        response.raise_for_status()


# --- Notifier Client (MQ) ---
class NotifierClient:
    """
    Client for the Notification Gateway (RabbitMQ).
    Publishes confirmation messages that the gateway delivers by e-mail or SMS.
    A connection is opened per message so the client can be shared across worker threads.
    """
    def __init__(self, host=None, queue=None, credentials=None):
        self.host = host or config.RABBITMQ_HOST
        self.queue = queue or config.NOTIFICATION_QUEUE
        self.credentials = credentials or pika.PlainCredentials(config.RABBITMQ_USER, config.RABBITMQ_PASSWORD)

    def _connect(self):
        """
        Establishes a RabbitMQ connection with bounded timeouts.
        Raises:
            pika.exceptions.AMQPConnectionError: If the connection fails.
        """
        return pika.BlockingConnection(
            pika.ConnectionParameters(
                host=self.host,
                credentials=self.credentials,
                heartbeat=60,
                socket_timeout=5,
                blocked_connection_timeout=10,
            )
        )

    def send(self, recipient: str, subject: str, body: str):
        """
        Publishes a notification message to the gateway queue.
        Args:
            recipient (str): E-mail address (or phone number) of the recipient.
            subject (str): Message subject.
            body (str): Message text.
        Raises:
            pika.exceptions.AMQPError: If connecting or publishing fails.
        """
        message = {
            "notificationId": str(uuid.uuid4()),
            "recipient": recipient,
            "subject": subject,
            "body": body,
            "createdAt": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        }
        connection = self._connect()
        try:
            channel = connection.channel()
            channel.queue_declare(queue=self.queue, durable=True)
            channel.basic_publish(
                exchange='',
                routing_key=self.queue,
                body=json.dumps(message),
                properties=pika.BasicProperties(delivery_mode=2, content_type="application/json")
            )
            log.info(f"[Notifier] '{subject}' queued for {recipient}.")
        finally:
            if connection.is_open:
                connection.close()
