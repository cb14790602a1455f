"""
mock_artifact_store.py — Mock Implementation of the Artifact Store (REST API)

This module provides a simulated object store for testing the fulfillment workflow.
It exposes a simple FastAPI application that keeps uploaded blobs in memory.

Simulation Scenarios:
    • Successful upload, download and deletion
    • Store unavailable (HTTP 503) for buckets starting with "unavailable"
    • Timeout simulation for buckets starting with "slow" (simulates client read timeout)

Endpoints:
    PUT    /{bucket}/{key} — Stores the request body.
    GET    /{bucket}/{key} — Returns a stored object.
    DELETE /{bucket}/{key} — Removes a stored object.

Port:
    Default: 8002 (HTTP)
"""

import logging
import time

from fastapi import FastAPI, HTTPException, Request, Response

app = FastAPI(title="Mock Artifact Store")
logging.basicConfig(level=logging.INFO)

# (bucket, key) -> (content type, content)
objects = {}


def _simulate(bucket: str, key: str):
    if bucket.startswith("unavailable"):
        logging.warning(f"[AS] Bucket {bucket} unavailable, rejecting {key}.")
        raise HTTPException(
            status_code=503,
            detail={"errorCode": "store_unavailable", "message": "Storage backend unavailable."}
        )
    if bucket.startswith("slow"):
        logging.info(f"[AS] Simulating timeout for {key}...")
        time.sleep(10)


@app.put("/{bucket}/{key:path}")
async def put_object(bucket: str, key: str, request: Request):
    """
    Stores an object.

    Returns:
        dict: The object's `location` (absolute URL), `key` and `size` in bytes.

    Raises:
        HTTPException(503): If the bucket simulates an unavailable backend.
    """
    _simulate(bucket, key)
    content = await request.body()
    objects[(bucket, key)] = (request.headers.get("content-type", "application/octet-stream"), content)
    logging.info(f"[AS] Stored {bucket}/{key} ({len(content)} bytes).")
    return {
        "location": str(request.url_for("get_object", bucket=bucket, key=key)),
        "key": key,
        "size": len(content),
    }


@app.get("/{bucket}/{key:path}")
def get_object(bucket: str, key: str):
    if (bucket, key) not in objects:
        raise HTTPException(status_code=404, detail={"errorCode": "not_found", "message": "No such object."})
    content_type, content = objects[(bucket, key)]
    return Response(content=content, media_type=content_type)


@app.delete("/{bucket}/{key:path}", status_code=204)
def delete_object(bucket: str, key: str):
    _simulate(bucket, key)
    if objects.pop((bucket, key), None) is None:
        raise HTTPException(status_code=404, detail={"errorCode": "not_found", "message": "No such object."})
    logging.info(f"[AS] Deleted {bucket}/{key}.")
    return Response(status_code=204)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8002)
