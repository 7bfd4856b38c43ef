"""
config.py — Runtime configuration of the Order Service

All settings are read from environment variables so the same image can run
locally, in Docker Compose or in Kubernetes without code changes.
"""

import os

# Persistence
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./orders.db")

# Product Service (message bus or REST)
PRODUCT_CLIENT = os.environ.get("PRODUCT_CLIENT", "rabbitmq")
RABBITMQ_HOST = os.environ.get("RABBITMQ_HOST", "localhost")
RABBITMQ_PORT = int(os.environ.get("RABBITMQ_PORT", "5672"))
RABBITMQ_USER = os.environ.get("RABBITMQ_USER", "guest")
RABBITMQ_PASSWORD = os.environ.get("RABBITMQ_PASSWORD", "guest")
PRODUCT_VALIDATION_QUEUE = os.environ.get("PRODUCT_VALIDATION_QUEUE", "validate_products")
PRODUCT_SERVICE_URL = os.environ.get("PRODUCT_SERVICE_URL", "http://product_service:8002")
PRODUCT_SERVICE_TIMEOUT = float(os.environ.get("PRODUCT_SERVICE_TIMEOUT", "5"))

# Name shown for items whose product no longer exists. Unset means null.
PRODUCT_PLACEHOLDER_NAME = os.environ.get("PRODUCT_PLACEHOLDER_NAME") or None

# "open" allows any status change, "strict" enforces the order lifecycle
ORDER_STATUS_POLICY = os.environ.get("ORDER_STATUS_POLICY", "open")

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_FILE = os.environ.get("LOG_FILE", "")
