"""
catalogue.py — In-memory product catalogue shared by the mock Product Services

Remove an entry while the order service runs to reproduce orders whose
products disappeared after they were placed.
"""

PRODUCTS = {
    "p-1": {"id": "p-1", "name": "Mechanical Keyboard", "price": "89.90"},
    "p-2": {"id": "p-2", "name": "USB-C Hub", "price": "34.50"},
    "p-3": {"id": "p-3", "name": "27\" Monitor", "price": "249.00"},
    "p-4": {"id": "p-4", "name": "Desk Lamp", "price": "19.99"},
}


def lookup_products(product_ids):
    """
    Answers a validation request in the reply envelope the order service expects.

    Args:
        product_ids (list): Requested product ids.

    Returns:
        dict: {"ok": True, "data": [...]} when every id is known, otherwise
        {"ok": False, "error": {"status": 400, "message": ..., "missing": [...]}}.
    """
    requested = sorted(set(product_ids))
    missing = [product_id for product_id in requested if product_id not in PRODUCTS]
    if missing:
        return {
            "ok": False,
            "error": {"status": 400, "message": "Some products were not found", "missing": missing},
        }
    return {"ok": True, "data": [PRODUCTS[product_id] for product_id in requested]}
