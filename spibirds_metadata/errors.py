"""
Exceptions raised by the spibirds-metadata pipeline.

Prompt-recoverable situations (ambiguous synonyms, ID collisions) never raise;
they loop on the Disambiguator until the operator gives a valid answer.
"""

from typing import List, Optional


class MetadataPipelineError(Exception):
    """Base class for all pipeline failures"""


class ConfigError(MetadataPipelineError):
    """The YAML configuration is missing or incomplete"""


class InputValidationError(MetadataPipelineError):
    """A submission or operator-supplied value cannot be used; fix and re-run"""


class IncompleteSubmissionError(InputValidationError):
    def __init__(self, role: str, missing: List[str]):
        self.role = role
        self.missing = missing
        super().__init__(f"Submission is missing required {role} fields: {', '.join(missing)}")


class CitationResolutionError(InputValidationError):
    def __init__(self, doi: str, reason: Optional[str] = None):
        self.doi = doi
        message = f"DOI '{doi}' could not be resolved"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class IdentifierFormatError(InputValidationError):
    """A siteID or studyID does not have the registered format"""


class PartyResolutionError(MetadataPipelineError):
    """A party role cannot be materialised from the submission"""


class SchemaValidationError(MetadataPipelineError):
    def __init__(self, errors: List[str], path: Optional[str] = None):
        self.errors = errors
        self.path = path
        location = f" ({path})" if path else ""
        super().__init__(f"EML document is not schema-valid{location}: " + "; ".join(errors))
