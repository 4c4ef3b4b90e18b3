# backend/chatwidget/api/auth.py
import os

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

api_key_header = APIKeyHeader(name="X-API-Key")


def operator_api_keys() -> set:
    return {k for k in os.getenv("OPERATOR_API_KEYS", "").split(",") if k}


def verify_operator(api_key: str = Depends(api_key_header)):
    if api_key not in operator_api_keys():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key"
        )
    return api_key
