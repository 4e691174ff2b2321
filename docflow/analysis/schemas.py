"""Classification labels and the per-label structured field schemas."""

CLASSIFICATION_LABELS: tuple[str, ...] = (
    "Invoice",
    "Contract",
    "Resume",
    "Report",
    "Email",
    "Other",
)

FIELD_SCHEMAS: dict[str, tuple[str, ...]] = {
    "Invoice": (
        "invoiceNumber",
        "vendorName",
        "customerName",
        "invoiceDate",
        "dueDate",
        "totalAmount",
    ),
    "Contract": (
        "contractTitle",
        "partyA",
        "partyB",
        "effectiveDate",
        "term",
    ),
}


def fields_for(label: str) -> tuple[str, ...]:
    """Field names to extract for a label; empty when it has no schema."""
    return FIELD_SCHEMAS.get(label, ())


def classification_json_schema() -> dict[str, object]:
    return {
        "type": "object",
        "properties": {
            "label": {"type": "string", "enum": list(CLASSIFICATION_LABELS)},
            "confidence": {"type": "integer", "minimum": 0, "maximum": 100},
        },
        "required": ["label", "confidence"],
        "additionalProperties": False,
    }


def fields_json_schema(fields: tuple[str, ...]) -> dict[str, object]:
    return {
        "type": "object",
        "properties": {name: {"type": "string"} for name in fields},
        "required": list(fields),
        "additionalProperties": False,
    }
