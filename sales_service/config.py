"""
config.py — Environment Configuration for the Sales Service

All settings are read once from environment variables at import time.
Defaults target a local docker-compose setup.
"""

import os

# Persistence (catalog, inventory ledger, sale records)
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./sales.db")
DB_TIMEOUT_SECONDS = float(os.environ.get("DB_TIMEOUT_SECONDS", "5"))

# Artifact store (REST)
ARTIFACT_STORE_URL = os.environ.get("ARTIFACT_STORE_URL", "http://artifact_store:8002")
ARTIFACT_BUCKET = os.environ.get("ARTIFACT_BUCKET", "sales-receipts")

# Notification gateway (RabbitMQ)
RABBITMQ_HOST = os.environ.get("RABBITMQ_HOST", "localhost")
RABBITMQ_USER = os.environ.get("RABBITMQ_USER", "guest")
RABBITMQ_PASSWORD = os.environ.get("RABBITMQ_PASSWORD", "guest")
NOTIFICATION_QUEUE = os.environ.get("NOTIFICATION_QUEUE", "sales.notifications")

# Metrics
METRICS_ENDPOINT = os.environ.get("METRICS_ENDPOINT") or None
METRICS_NAMESPACE = os.environ.get("METRICS_NAMESPACE", "SalesService/App")
APP_ENV = os.environ.get("APP_ENV", "LOCAL")

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_FILE = os.environ.get("LOG_FILE", "sales_processing.log")
