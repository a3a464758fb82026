"""
Response classifiers for bucketprobe.

Each provider has a classifier that turns raw transport outcomes into
verdicts, isolating the provider's status-code conventions from the rest of
the scan.
"""

from bucketprobe.classifiers.base import ResponseClassifier
from bucketprobe.classifiers.s3 import S3Classifier, count_listed_keys, decode_error_body
from bucketprobe.classifiers.azure_blob import AzureBlobClassifier
from bucketprobe.classifiers.gcs import GCSClassifier, decode_test_permissions

__all__ = [
    "ResponseClassifier",
    "S3Classifier",
    "AzureBlobClassifier",
    "GCSClassifier",
    "count_listed_keys",
    "decode_error_body",
    "decode_test_permissions",
]
