"""
mock_product_service.py — Mock Implementation of the Product Service (RabbitMQ)

This module simulates the Product Service side of the product validation
request/reply exchange, so the order service can be run locally without the
real catalogue.

Communication Channels:
    - Request Queue: 'validate_products'  ← JSON list of product ids
    - Reply:         message to `reply_to` with the same `correlation_id`
"""

import json
import logging
import os
import time

import pika

from mock_services.catalogue import lookup_products

logging.basicConfig(level=logging.INFO)
RABBITMQ_HOST = os.environ.get("RABBITMQ_HOST", "localhost")
RABBITMQ_USER = os.environ.get("RABBITMQ_USER", "guest")
RABBITMQ_PASSWORD = os.environ.get("RABBITMQ_PASSWORD", "guest")
QUEUE = os.environ.get("PRODUCT_VALIDATION_QUEUE", "validate_products")


def get_mq_connection():
    """
    Establishes and returns a connection to the RabbitMQ message broker.

    Raises:
        pika.exceptions.AMQPConnectionError: If the broker is unavailable.
    """
    credentials = pika.PlainCredentials(RABBITMQ_USER, RABBITMQ_PASSWORD)
    return pika.BlockingConnection(
        pika.ConnectionParameters(host=RABBITMQ_HOST, credentials=credentials)
    )


def handle_request(body):
    """
    Builds the reply for one validation request body.

    Malformed bodies are answered with a 400 error instead of being dropped,
    so the caller does not have to wait for its timeout.
    """
    try:
        product_ids = json.loads(body)
        if not isinstance(product_ids, list):
            raise ValueError("expected a list of product ids")
    except ValueError as e:
        return {"ok": False, "error": {"status": 400, "message": f"Invalid request: {e}", "missing": []}}
    return lookup_products(product_ids)


def on_request(ch, method, properties, body):
    """
    Callback for messages on the validation queue. Replies and acknowledges.
    """
    reply = handle_request(body)
    logging.info(f"[PRS] Validation request {body!r} -> ok={reply['ok']}")

    if properties.reply_to:
        ch.basic_publish(
            exchange='',
            routing_key=properties.reply_to,
            properties=pika.BasicProperties(
                correlation_id=properties.correlation_id,
                content_type="application/json",
            ),
            body=json.dumps(reply),
        )
    else:
        logging.warning("[PRS] Request without reply_to, dropping it.")
    ch.basic_ack(delivery_tag=method.delivery_tag)


def main():
    """
    Starts the mock Product Service consumer loop.

    Retries the broker connection every 5 seconds and stops on Ctrl+C.
    """
    logging.info("Mock Product Service (MQ) starting...")
    while True:
        try:
            connection = get_mq_connection()
            channel = connection.channel()
            channel.queue_declare(queue=QUEUE)
            channel.basic_qos(prefetch_count=1)

            logging.info(f"[PRS] Waiting for validation requests on '{QUEUE}'.")
            channel.basic_consume(queue=QUEUE, on_message_callback=on_request)
            channel.start_consuming()
        except pika.exceptions.AMQPConnectionError as e:
            logging.warning(f"MQ connection failed, retrying in 5s... {e}")
            time.sleep(5)
        except KeyboardInterrupt:
            break


if __name__ == '__main__':
    main()
