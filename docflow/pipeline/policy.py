"""Terminal-stage policy: display-name synthesis and routing."""

import re
from dataclasses import dataclass
from pathlib import PurePath

_RESERVED_CHARS = re.compile(r'[/\\?%*:|"<>]')
_WHITESPACE_RUN = re.compile(r"\s+")
_MISSING_VALUES = frozenset({"", "N/A"})


def sanitize_filename(name: str) -> str:
    """Drop reserved characters and collapse whitespace runs to underscores."""
    return _WHITESPACE_RUN.sub("_", _RESERVED_CHARS.sub("", name))


@dataclass(frozen=True)
class RenameTemplate:
    prefix: str
    fields: tuple[str, ...]


RENAME_TEMPLATES: dict[str, RenameTemplate] = {
    "Invoice": RenameTemplate(prefix="Invoice", fields=("vendorName", "invoiceDate")),
    "Contract": RenameTemplate(prefix="Contract", fields=("partyA", "effectiveDate")),
}

ROUTES: dict[str, str] = {
    "Invoice": "Accounting",
    "Contract": "Legal",
    "Resume": "HR",
}
DEFAULT_DESTINATION = "General Archive"


class RenameSynthesizer:
    """Builds a display name from the classification and structured fields.

    Falls back to the current name when the label has no template or a
    required field is missing. The extension of the current name is kept.
    """

    def __init__(self, templates: dict[str, RenameTemplate] | None = None) -> None:
        self._templates = RENAME_TEMPLATES if templates is None else templates

    def synthesize(self, label: str, structured_data: dict[str, str], current_name: str) -> str:
        template = self._templates.get(label)
        if template is None:
            return sanitize_filename(current_name)
        values = [str(structured_data.get(name, "")).strip() for name in template.fields]
        if any(value in _MISSING_VALUES for value in values):
            return sanitize_filename(current_name)
        extension = PurePath(current_name).suffix
        return sanitize_filename("_".join([template.prefix, *values]) + extension)


class RoutingResolver:
    def __init__(self, routes: dict[str, str] | None = None, default: str = DEFAULT_DESTINATION) -> None:
        self._routes = ROUTES if routes is None else routes
        self._default = default

    def resolve(self, label: str) -> str:
        return self._routes.get(label, self._default)
