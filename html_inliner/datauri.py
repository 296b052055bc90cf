"""Replace references with base64 ``data:`` URIs."""

from __future__ import annotations

import base64

from .errors import FetchError
from .models import Job, Resource


def encode_data_uri(resource: Resource) -> str:
    payload = base64.b64encode(resource.data).decode("ascii")
    return f"data:{resource.mime};base64,{payload}"


def make_data_uri(reference: str, job: Job) -> str:
    """Return a data URI for ``reference``, or ``reference`` itself if it cannot be fetched."""
    try:
        resource = job.loader.load(reference, job.log)
    except FetchError as exc:
        job.log.debug("leaving %s as is: %s", reference, exc)
        return reference
    return encode_data_uri(resource)
