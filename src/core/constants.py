"""Core constants used across metastore modules.

This module centralizes defaults and reserved on-disk names.
Keeping values here avoids magic literals in storage logic.
"""

from __future__ import annotations

DEFAULT_ROOT_URI = ".metastore"
DEFAULT_META_FOLDER_NAME = "metastore"
DEFAULT_DOCUMENT_FORMAT = "xml"
SUPPORTED_DOCUMENT_FORMATS = ("xml", "json")
STORE_NAME_PREFIX = "VFS Metastore: "
LOCK_MARKER_SUFFIX = ".lock"
DEFAULT_LOCK_POLL_SECONDS = 0.1
DEFAULT_LOCK_TIMEOUT_SECONDS = 10.0
TYPE_DOCUMENT_STEM = ".type"
XML_EXTENSION = "xml"
JSON_EXTENSION = "json"
XML_ELEMENT_TYPE_TAG = "data-type"
XML_ELEMENT_TAG = "element"
XML_CHILD_TAG = "child"
S3_URI_SCHEME = "s3://"
S3_FOLDER_MARKER = "/"
