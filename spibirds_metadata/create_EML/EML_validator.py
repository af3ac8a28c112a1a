"""
Validation of EML documents written by spibirds-metadata.

Two checks: the XML Schema of the EML 2.2.0 subset this package writes, and
id/references integrity (ids are unique and every reference points at an
element carrying that id).
"""

import os
from collections import Counter
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

from lxml import etree

SCHEMA_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'eml-subset.xsd')


@dataclass
class ValidationReport:
    valid: bool
    errors: List[str] = field(default_factory=list)

    def __bool__(self):
        return self.valid


@lru_cache(maxsize=1)
def _schema() -> etree.XMLSchema:
    return etree.XMLSchema(etree.parse(SCHEMA_PATH))


def check_references(root) -> List[str]:
    errors = []
    ids = [elem.get('id') for elem in root.iter() if isinstance(elem.tag, str) and elem.get('id')]
    for duplicate, count in Counter(ids).items():
        if count > 1:
            errors.append(f"id '{duplicate}' is used {count} times")
    known = set(ids)
    for ref in root.iter('references'):
        target = (ref.text or '').strip()
        if target not in known:
            errors.append(f"references '{target}' does not point at any element id")
    return errors


def validate_eml(xml_bytes: bytes) -> ValidationReport:
    try:
        root = etree.fromstring(xml_bytes)
    except etree.XMLSyntaxError as e:
        return ValidationReport(valid=False, errors=[f"Not well-formed XML: {e}"])

    schema = _schema()
    errors = []
    if not schema.validate(root):
        errors.extend(f"line {err.line}: {err.message}" for err in schema.error_log)
    errors.extend(check_references(root))
    return ValidationReport(valid=not errors, errors=errors)


def validate_eml_file(path: str) -> ValidationReport:
    with open(path, 'rb') as f:
        return validate_eml(f.read())
