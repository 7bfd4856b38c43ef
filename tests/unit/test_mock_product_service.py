from types import SimpleNamespace

from fastapi.testclient import TestClient

from mock_services.catalogue import lookup_products
from mock_services.mock_product_api import app
from mock_services.mock_product_service import handle_request, on_request


def test_lookup_known_products():
    reply = lookup_products(["p-2", "p-1"])

    assert reply["ok"] is True
    assert [product["id"] for product in reply["data"]] == ["p-1", "p-2"]


def test_lookup_reports_missing_products():
    reply = lookup_products(["p-1", "x", "y"])

    assert reply["ok"] is False
    assert reply["error"]["status"] == 400
    assert reply["error"]["missing"] == ["x", "y"]


def test_malformed_request_gets_an_error_reply():
    reply = handle_request(b'{"ids": ["p-1"]}')

    assert reply["ok"] is False
    assert reply["error"]["status"] == 400


class RecordingChannel:
    def __init__(self):
        self.published = []
        self.acked = []

    def basic_publish(self, exchange, routing_key, properties, body):
        self.published.append((routing_key, properties.correlation_id, body))

    def basic_ack(self, delivery_tag):
        self.acked.append(delivery_tag)


def test_reply_goes_to_reply_to_with_correlation_id():
    channel = RecordingChannel()
    properties = SimpleNamespace(reply_to="amq.gen-1", correlation_id="c-1")

    on_request(channel, SimpleNamespace(delivery_tag=7), properties, b'["p-1"]')

    assert channel.published[0][:2] == ("amq.gen-1", "c-1")
    assert channel.acked == [7]


def test_rest_mock_validates_products():
    client = TestClient(app)

    ok = client.post("/products/validate", json={"ids": ["p-1"]})
    missing = client.post("/products/validate", json={"ids": ["p-1", "nope"]})

    assert ok.status_code == 200
    assert ok.json()["data"][0]["name"] == "Mechanical Keyboard"
    assert missing.status_code == 400
    assert missing.json()["error"]["missing"] == ["nope"]
