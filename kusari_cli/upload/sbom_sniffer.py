"""
SBOM subject detection.

Each detector looks at a decoded JSON document and returns
``(subject, uri)`` or None. Detectors run in a fixed order and the first
match wins; a document no detector recognises cannot be cross-referenced
against the blocked-package list.
"""

import json
import logging
from typing import Any, Callable, List, Optional, Tuple

from .models import SbomSubjectReference

logger = logging.getLogger(__name__)

Detector = Callable[[Any], Optional[Tuple[str, str]]]


def detect_cyclonedx(document: Any) -> Optional[Tuple[str, str]]:
    """CycloneDX: subject is ``metadata.component.name``, URI is ``serialNumber``."""
    if not isinstance(document, dict) or document.get("bomFormat") != "CycloneDX":
        return None
    metadata = document.get("metadata")
    component = metadata.get("component") if isinstance(metadata, dict) else None
    name = component.get("name") if isinstance(component, dict) else None
    serial = document.get("serialNumber")
    if isinstance(name, str) and name and isinstance(serial, str) and serial:
        return name, serial
    return None


def detect_spdx(document: Any) -> Optional[Tuple[str, str]]:
    """SPDX: subject is ``name``, URI is ``documentNamespace#DOCUMENT``."""
    if not isinstance(document, dict) or document.get("SPDXID") != "SPDXRef-DOCUMENT":
        return None
    name = document.get("name")
    namespace = document.get("documentNamespace")
    if isinstance(name, str) and name and isinstance(namespace, str) and namespace:
        return name, namespace + "#DOCUMENT"
    return None


DETECTORS: List[Detector] = [detect_cyclonedx, detect_spdx]


def sniff_sbom_subject(blob: bytes, doc_ref: str, detectors: Optional[List[Detector]] = None) -> SbomSubjectReference:
    """Best effort: never raises, returns a reference without subject/URI on no match."""
    try:
        document = json.loads(blob)
    except (ValueError, UnicodeDecodeError) as e:
        logger.debug("Document %s is not JSON, skipping subject detection: %s", doc_ref, e)
        return SbomSubjectReference(doc_ref=doc_ref)

    for detector in detectors or DETECTORS:
        found = detector(document)
        if found is not None:
            subject, uri = found
            logger.debug("Detected SBOM subject %s (%s) via %s", subject, uri, detector.__name__)
            return SbomSubjectReference(doc_ref=doc_ref, subject=subject, uri=uri)

    return SbomSubjectReference(doc_ref=doc_ref)
