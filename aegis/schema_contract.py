"""
Output contracts for Gemini responses.

Each contract is a table of Rule objects describing required fields, primitive
kinds, enums, numeric ranges and array cardinality. One generic routine,
validate(), interprets any table; to_response_schema() renders the same table
as the Gemini responseSchema so the model is constrained by exactly the rules
its output is later checked against.

Adding a new output shape means adding a new table, not new checking code.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Optional

from .errors import ValidationError
from .schemas import (
    FailureImpact,
    FailureProbability,
    ManufacturabilityRating,
    PrimitiveType,
    Verdict,
)

# Blueprints are capped so the 3D preview stays readable
MAX_BLUEPRINT_PARTS = 12

HEX_COLOR = r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$"

_KIND_NAMES = {
    "string": "STRING",
    "number": "NUMBER",
    "integer": "INTEGER",
    "boolean": "BOOLEAN",
    "object": "OBJECT",
    "array": "ARRAY",
}


@dataclass(frozen=True)
class Rule:
    """One node of a contract. Objects carry `properties`, arrays carry `items`."""

    kind: str
    required: bool = True
    description: str = ""
    enum: Optional[tuple] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    pattern: Optional[str] = None
    unique_by: Optional[str] = None
    items: Optional["Rule"] = None
    properties: Optional[dict] = None


def _values(enum_cls) -> tuple:
    return tuple(member.value for member in enum_cls)


def _string_list(description: str, min_items: Optional[int] = None) -> Rule:
    return Rule("array", items=Rule("string"), min_items=min_items, description=description)


def _score(description: str) -> Rule:
    return Rule("number", minimum=0, maximum=100, description=description)


def _vector(description: str) -> Rule:
    return Rule("array", items=Rule("number"), min_items=3, max_items=3, description=description)


ANALYSIS_CONTRACT = Rule("object", properties={
    "summary": Rule("string", description="A concise executive summary of the analysis."),
    "riskScore": Rule(
        "number", minimum=0, maximum=1,
        description="A calculated risk score from 0.0 (Safe) to 1.0 (Critical Failure).",
    ),
    "verdict": Rule("string", enum=_values(Verdict)),
    # Overwritten with the caller's domain after validation, so not enforced here
    "domain": Rule(
        "string", required=False,
        description="The primary physics domain used for this specific analysis.",
    ),
    "scores": Rule("object", properties={
        "physics": _score("Adherence to physical laws (0-100)."),
        "engineering": _score("Implementation feasibility (0-100)."),
        "economics": _score("Cost/Value viability (0-100)."),
        "safety": _score("User and environmental safety (0-100)."),
    }),
    "componentBreakdown": _string_list(
        "List of fundamental engineering components identified in Step 1.", min_items=1,
    ),
    "appliedPhysicsLaws": _string_list(
        "List of specific physics laws applied in Step 2 "
        "(e.g., 'Bernoulli's Principle', 'Newton's 2nd Law').", min_items=1,
    ),
    "keyCalculations": _string_list(
        "Strings representing math calculations from Step 3 "
        "(e.g., 'Thrust = 500kN', 'Stress = 200MPa').", min_items=1,
    ),
    "manufacturability": Rule("object", properties={
        "rating": Rule("string", enum=_values(ManufacturabilityRating)),
        "assessment": Rule(
            "string",
            description="Assessment from Step 6 regarding material availability and assembly.",
        ),
    }),
    "violatedConstraints": _string_list(
        "List of specific physical laws, mathematical principles, or logical constraints "
        "violated. Use a single 'None identified' entry when nothing is violated.",
        min_items=1,
    ),
    "failureModes": Rule("array", items=Rule("object", properties={
        "scenario": Rule("string"),
        "probability": Rule("string", enum=_values(FailureProbability)),
        "impact": Rule("string", enum=_values(FailureImpact)),
        "mitigation": Rule(
            "string", required=False, description="Potential fix or 'None' if impossible.",
        ),
    })),
    "optimizations": _string_list(
        "List of concrete optimization steps to improve feasibility, reduce mass, "
        "increase efficiency, or lower risk.", min_items=1,
    ),
    "reasoning": Rule(
        "string",
        description="Detailed Markdown explanation of the analysis, citing specific laws "
                    "(e.g., 2nd Law of Thermodynamics) and calculations where applicable.",
    ),
})


BLUEPRINT_CONTRACT = Rule(
    "array",
    max_items=MAX_BLUEPRINT_PARTS,
    unique_by="id",
    items=Rule("object", properties={
        "id": Rule("string"),
        "type": Rule("string", enum=_values(PrimitiveType)),
        "position": _vector("[x, y, z] centre position"),
        "rotation": _vector("Euler angles in radians [x, y, z]"),
        "scale": _vector("[x, y, z] dimensions"),
        "color": Rule("string", pattern=HEX_COLOR, description="Hex colour, e.g. #3b82f6"),
        "name": Rule("string"),
    }),
)


# --- Validation ---

def validate(raw: Any, contract: Rule) -> Any:
    """
    Check decoded JSON against a contract.

    Returns raw unchanged on success. Raises ValidationError(field, reason) on
    the first violation, where field is a path such as "scores.physics" or
    "[3].position[1]". Values are never clamped or coerced.
    """
    _check(raw, contract, "")
    return raw


def _label(path: str) -> str:
    return path or "$"


def _kind_of(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    return type(value).__name__


def _matches_kind(value: Any, kind: str) -> bool:
    actual = _kind_of(value)
    if kind == "number":
        return actual in ("number", "integer")
    return actual == kind


def _check(value: Any, rule: Rule, path: str) -> None:
    if not _matches_kind(value, rule.kind):
        raise ValidationError(_label(path), f"expected {rule.kind}, got {_kind_of(value)}")

    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError(_label(path), f"{value} is not a finite number")

    if rule.enum is not None and value not in rule.enum:
        allowed = ", ".join(str(v) for v in rule.enum)
        raise ValidationError(_label(path), f"{value!r} is not one of: {allowed}")

    if rule.minimum is not None and value < rule.minimum:
        raise ValidationError(_label(path), f"{value} is below the minimum of {rule.minimum}")
    if rule.maximum is not None and value > rule.maximum:
        raise ValidationError(_label(path), f"{value} is above the maximum of {rule.maximum}")

    if rule.pattern is not None and not re.match(rule.pattern, value):
        raise ValidationError(_label(path), f"{value!r} does not match {rule.pattern}")

    if rule.kind == "object":
        _check_object(value, rule, path)
    elif rule.kind == "array":
        _check_array(value, rule, path)


def _check_object(value: dict, rule: Rule, path: str) -> None:
    for name, child in (rule.properties or {}).items():
        child_path = f"{path}.{name}" if path else name
        if name not in value or value[name] is None:
            if child.required:
                raise ValidationError(child_path, "required field is missing")
            continue
        _check(value[name], child, child_path)


def _check_array(value: list, rule: Rule, path: str) -> None:
    if rule.min_items is not None and len(value) < rule.min_items:
        raise ValidationError(
            _label(path), f"expected at least {rule.min_items} item(s), got {len(value)}"
        )
    if rule.max_items is not None and len(value) > rule.max_items:
        raise ValidationError(
            _label(path), f"expected at most {rule.max_items} item(s), got {len(value)}"
        )

    if rule.items is not None:
        for i, item in enumerate(value):
            _check(item, rule.items, f"{path}[{i}]")

    if rule.unique_by is not None:
        seen = set()
        for i, item in enumerate(value):
            key = item.get(rule.unique_by) if isinstance(item, dict) else None
            if key in seen:
                raise ValidationError(
                    f"{path}[{i}].{rule.unique_by}", f"duplicate value {key!r}"
                )
            seen.add(key)


# --- Gemini responseSchema rendering ---

def to_response_schema(rule: Rule) -> dict:
    """Render a contract as a Gemini (OpenAPI subset) responseSchema dict."""
    schema = {"type": _KIND_NAMES[rule.kind]}
    if rule.description:
        schema["description"] = rule.description
    if rule.enum is not None:
        schema["enum"] = list(rule.enum)
    if rule.minimum is not None:
        schema["minimum"] = rule.minimum
    if rule.maximum is not None:
        schema["maximum"] = rule.maximum
    if rule.min_items is not None:
        schema["minItems"] = rule.min_items
    if rule.max_items is not None:
        schema["maxItems"] = rule.max_items
    if rule.items is not None:
        schema["items"] = to_response_schema(rule.items)
    if rule.properties is not None:
        schema["properties"] = {
            name: to_response_schema(child) for name, child in rule.properties.items()
        }
        schema["required"] = [
            name for name, child in rule.properties.items() if child.required
        ]
    return schema
