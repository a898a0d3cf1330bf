"""Schema definitions for the structured crop diagnosis response."""

from typing import Any, Dict

SCHEMA_NAME = "crop_diagnosis"

STATUSES = ["healthy", "diseased", "irrelevant"]

REQUIRED_FIELDS = ["status", "diseaseName", "description"]

DIAGNOSIS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "status": {
            "type": "string",
            "description": (
                "The status of the image. Must be 'healthy', 'diseased', or 'irrelevant' "
                "if the image does not contain a plant, leaf, or crop."
            ),
            "enum": STATUSES,
        },
        "diseaseName": {
            "type": "string",
            "description": (
                "If diseased, the common name of the disease. If healthy, this should be "
                "'Healthy Plant'. If irrelevant, this should be 'Irrelevant Image'."
            ),
        },
        "description": {
            "type": "string",
            "description": "A brief description of the findings.",
        },
        "controlMeasures": {
            "type": "array",
            "description": (
                "If the plant is diseased, provide a list of at least three actionable "
                "control/cure measures. Omit this field if the plant is healthy or the "
                "image is irrelevant."
            ),
            "items": {"type": "string"},
        },
        "preventativeMeasures": {
            "type": "array",
            "description": (
                "If the plant is healthy, provide a list of general preventative tips. Omit "
                "this field if the plant is diseased or the image is irrelevant."
            ),
            "items": {"type": "string"},
        },
    },
    "required": REQUIRED_FIELDS,
}

# Strict mode would force every property to be required, so the optional
# measure lists are only enforced by the prompt and post-processing.
RESPONSE_FORMAT: Dict[str, Any] = {
    "type": "json_schema",
    "name": SCHEMA_NAME,
    "schema": DIAGNOSIS_SCHEMA,
    "strict": False,
}
