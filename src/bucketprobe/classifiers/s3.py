"""
S3 response classifier.

S3 overloads status codes: a 301 from a head-bucket call means the bucket
exists behind another regional endpoint, not that it is missing. Error
bodies are XML documents that can reveal the owning endpoint even when
access is denied, which is used for region inference.
"""

from __future__ import annotations

import logging
from xml.etree import ElementTree

from bucketprobe.classifiers.base import ResponseClassifier
from bucketprobe.errors import DecodeError
from bucketprobe.models import IdentityContext, ProbeKind, ProviderErrorBody, Verdict
from bucketprobe.transport import TransportOutcome

logger = logging.getLogger(__name__)

# XML element name -> ProviderErrorBody field
_ERROR_FIELDS = {
    "Code": "code",
    "Message": "message",
    "Endpoint": "endpoint",
    "Bucket": "bucket",
    "RequestId": "request_id",
    "HostId": "host_id",
}

_DENIAL_CODES = frozenset({"AccessDenied", "AllAccessDisabled", "AccountProblem"})

BUCKET_REGION_HEADER = "x-amz-bucket-region"


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _parse_xml(body: bytes) -> ElementTree.Element:
    try:
        return ElementTree.fromstring(body)
    except ElementTree.ParseError as e:
        raise DecodeError(f"malformed XML: {e}") from e


def decode_error_body(body: bytes) -> ProviderErrorBody:
    """
    Decode an S3 XML error document.

    All six fields are required; a document missing any of them is rejected.

    Args:
        body: Raw response body

    Returns:
        ProviderErrorBody with the decoded fields

    Raises:
        DecodeError: If the body is not a complete S3 error document
    """
    if not body or not body.strip():
        raise DecodeError("empty body")

    root = _parse_xml(body)
    if _local_name(root.tag) != "Error":
        raise DecodeError(f"unexpected root element <{_local_name(root.tag)}>")

    values: dict[str, str] = {}
    for child in root:
        name = _local_name(child.tag)
        if name in _ERROR_FIELDS:
            values[_ERROR_FIELDS[name]] = (child.text or "").strip()

    missing = [xml for xml, attr in _ERROR_FIELDS.items() if attr not in values]
    if missing:
        raise DecodeError(f"missing fields: {', '.join(missing)}")

    return ProviderErrorBody(**values)


def count_listed_keys(body: bytes) -> int | None:
    """Count <Contents> entries in a ListBucketResult, None if unparseable."""
    try:
        root = _parse_xml(body)
    except DecodeError:
        return None
    if _local_name(root.tag) != "ListBucketResult":
        return None
    return sum(1 for child in root if _local_name(child.tag) == "Contents")


class S3Classifier(ResponseClassifier):
    """Classifier for S3 REST responses."""

    provider = "s3"

    def classify_existence(
        self,
        outcome: TransportOutcome,
        identity: IdentityContext = IdentityContext.ANONYMOUS,
    ) -> Verdict:
        probe = ProbeKind.EXISTENCE
        region = outcome.header(BUCKET_REGION_HEADER)

        if outcome.status == 301:
            # Exists, but in a different region than the endpoint queried
            logger.debug(f"head returned 301, bucket region={region}")
            return Verdict.confirmed(
                probe, True, outcome.status, identity=identity, region_hint=region
            )
        if outcome.status == 400 and region:
            # Signed request sent to the wrong region
            logger.debug(f"head returned 400, bucket region={region}")
            return Verdict.confirmed(
                probe, True, outcome.status, identity=identity, region_hint=region
            )
        if outcome.is_success:
            return Verdict.confirmed(
                probe, True, outcome.status, identity=identity, region_hint=region
            )
        if outcome.status == 404:
            return Verdict.confirmed(probe, False, outcome.status, identity=identity)
        if outcome.status == 403:
            return Verdict.denied(
                probe, outcome.status, identity=identity, region_hint=region
            )
        return self.classify_unexpected(probe, outcome, identity)

    def classify_capability(
        self,
        probe: ProbeKind,
        outcome: TransportOutcome,
        identity: IdentityContext = IdentityContext.ANONYMOUS,
    ) -> Verdict:
        if outcome.is_success:
            detail = {}
            if probe == ProbeKind.LIST_OBJECTS:
                key_count = count_listed_keys(outcome.body)
                if key_count is not None:
                    detail["key_count"] = key_count
            return Verdict.allowed(probe, outcome.status, identity=identity, detail=detail)

        if outcome.status in (403, 404):
            error_body = self._try_decode(outcome.body)
            return Verdict.denied(
                probe,
                outcome.status,
                identity=identity,
                error_body=error_body,
                region_hint=error_body.region_hint if error_body else None,
            )

        return self.classify_unexpected(probe, outcome, identity)

    def classify_unexpected(
        self,
        probe: ProbeKind,
        outcome: TransportOutcome,
        identity: IdentityContext = IdentityContext.ANONYMOUS,
    ) -> Verdict:
        try:
            error_body = decode_error_body(outcome.body)
        except DecodeError as e:
            logger.debug(f"cannot decode S3 error body (status {outcome.status}): {e}")
            return Verdict.transport_failure(
                probe,
                f"unexpected status {outcome.status}",
                status=outcome.status,
                identity=identity,
            )

        region = outcome.header(BUCKET_REGION_HEADER) or error_body.region_hint
        if error_body.code in _DENIAL_CODES:
            return Verdict.denied(
                probe,
                outcome.status,
                identity=identity,
                error_body=error_body,
                region_hint=region,
            )
        return Verdict.ambiguous(
            probe,
            outcome.status,
            identity=identity,
            error_body=error_body,
            region_hint=region,
        )

    def _try_decode(self, body: bytes) -> ProviderErrorBody | None:
        try:
            return decode_error_body(body)
        except DecodeError:
            return None
