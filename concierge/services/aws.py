"""Shared AWS helpers for service clients."""

from __future__ import annotations

import base64
import binascii
from typing import Any, Optional

import boto3

from concierge.config.settings import settings

Credentials = tuple[str, str]


def resolve_aws_credentials() -> Credentials | None:
    """Return the configured access/secret key pair, if both are set."""

    aws = settings.aws
    if aws.access_key_id and aws.secret_access_key:
        return aws.access_key_id, aws.secret_access_key.get_secret_value()
    return None


def unpack_api_key(packed: Optional[str]) -> Credentials | None:
    """Split an ``access:secret`` pair, optionally base64 encoded, into its halves."""

    if not packed:
        return None
    try:
        raw = base64.b64decode(packed.strip(), validate=True)
    except (binascii.Error, ValueError):
        raw = packed.encode("utf-8", "ignore")

    printable = bytes(b for b in raw if 31 < b < 127).decode("ascii")
    access_key, sep, secret_key = printable.partition(":")
    if not sep or not access_key or not secret_key:
        return None
    return access_key, secret_key


def create_boto3_client(
    service_name: str,
    *,
    region_name: str | None = None,
    credentials: Credentials | None = None,
) -> Any:
    """boto3 client for ``service_name``; falls back to the configured key pair."""

    kwargs: dict[str, Any] = {"region_name": region_name or settings.aws.region}
    pair = credentials or resolve_aws_credentials()
    if pair:
        kwargs["aws_access_key_id"], kwargs["aws_secret_access_key"] = pair
    return boto3.client(service_name, **kwargs)
