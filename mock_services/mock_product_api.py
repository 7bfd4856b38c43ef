"""
mock_product_api.py — Mock Implementation of the Product Service (REST API)

FastAPI counterpart of mock_product_service.py for running the order service
with PRODUCT_CLIENT=http.

Endpoints:
    POST /products/validate — Validates a list of product ids.

Port:
    Default: 8002 (HTTP)
"""

import logging
from typing import List

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from mock_services.catalogue import lookup_products

app = FastAPI(title="Mock Product Service")
logging.basicConfig(level=logging.INFO)


class ValidateProductsRequest(BaseModel):
    ids: List[str]


@app.post("/products/validate")
def validate_products(request: ValidateProductsRequest):
    """
    Returns the requested products, or 400 with the unknown ids.
    """
    reply = lookup_products(request.ids)
    if not reply["ok"]:
        logging.warning(f"[PRS] Unknown products: {reply['error']['missing']}")
        return JSONResponse(status_code=reply["error"]["status"], content=reply)
    logging.info(f"[PRS] Validated {len(reply['data'])} product(s).")
    return reply


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8002)
