"""
JSON schemas for ChoreQuest request payloads.

Routes validate request bodies here before calling the service layer.
"""

from typing import Any, Dict, Optional

import jsonschema

from chorequest.services.errors import ValidationError

_TITLE = {"type": "string", "minLength": 1, "maxLength": 100}
_DESCRIPTION = {"type": ["string", "null"], "maxLength": 2000}
_NOTE = {"type": ["string", "null"], "maxLength": 500}
_ID = {"type": "integer", "minimum": 1}
_POINTS = {"type": "integer", "minimum": 0}
_DECISION = {"type": "string", "enum": ["approved", "rejected"]}

CHILD_SCHEMA = {
    "type": "object",
    "properties": {
        "name": _TITLE
    },
    "required": ["name"],
    "additionalProperties": False
}

TASK_SCHEMA = {
    "type": "object",
    "properties": {
        "title": _TITLE,
        "description": _DESCRIPTION,
        "recurrence": {"type": "string", "enum": ["once", "daily", "weekly"]},
        "default_points": _POINTS,
        "requires_approval": {"type": "boolean"},
        "is_active": {"type": "boolean"}
    },
    "required": ["title"],
    "additionalProperties": False
}

TASK_UPDATE_SCHEMA = dict(TASK_SCHEMA, required=[], minProperties=1)

PRESET_CHORES_SCHEMA = {
    "type": "object",
    "properties": {
        "category": {"type": ["string", "null"], "maxLength": 100},
        "child_id": {"type": ["integer", "null"], "minimum": 1},
        "chores": {
            "type": "array",
            "minItems": 1,
            "items": dict(TASK_SCHEMA, properties={
                k: v for k, v in TASK_SCHEMA["properties"].items() if k != "is_active"
            })
        }
    },
    "required": ["chores"],
    "additionalProperties": False
}

ASSIGNMENT_SCHEMA = {
    "type": "object",
    "properties": {
        "child_id": _ID
    },
    "required": ["child_id"],
    "additionalProperties": False
}

SUBMIT_COMPLETION_SCHEMA = {
    "type": "object",
    "properties": {
        "task_id": _ID,
        "note": _NOTE
    },
    "required": ["task_id"],
    "additionalProperties": False
}

REVIEW_SUBMISSION_SCHEMA = {
    "type": "object",
    "properties": {
        "status": _DECISION,
        "points_override": {"type": ["integer", "null"], "minimum": 0},
        "note": _NOTE
    },
    "required": ["status"],
    "additionalProperties": False
}

QUEST_SCHEMA = {
    "type": "object",
    "properties": {
        "title": _TITLE,
        "description": _DESCRIPTION,
        "target_reward": {"type": ["string", "null"], "maxLength": 200}
    },
    "required": ["title"],
    "additionalProperties": False
}

QUEST_TASK_SCHEMA = {
    "type": "object",
    "properties": {
        "title": _TITLE,
        "description": _DESCRIPTION,
        "points": _POINTS,
        "order_index": {"type": "integer"}
    },
    "required": ["title"],
    "additionalProperties": False
}

SUBMIT_QUEST_TASK_SCHEMA = {
    "type": "object",
    "properties": {
        "quest_task_id": _ID,
        "note": _NOTE
    },
    "required": ["quest_task_id"],
    "additionalProperties": False
}

REVIEW_SCHEMA = {
    "type": "object",
    "properties": {
        "status": _DECISION
    },
    "required": ["status"],
    "additionalProperties": False
}

REWARD_SCHEMA = {
    "type": "object",
    "properties": {
        "title": _TITLE,
        "description": _DESCRIPTION,
        "cost_points": {"type": "integer", "minimum": 1}
    },
    "required": ["title"],
    "additionalProperties": False
}

PRESET_REWARDS_SCHEMA = {
    "type": "object",
    "properties": {
        "rewards": {
            "type": "array",
            "minItems": 1,
            "items": dict(REWARD_SCHEMA, required=["title", "cost_points"])
        }
    },
    "required": ["rewards"],
    "additionalProperties": False
}

REDEEM_SCHEMA = {
    "type": "object",
    "properties": {
        "reward_id": _ID
    },
    "required": ["reward_id"],
    "additionalProperties": False
}


def validate_payload(data: Optional[Dict[str, Any]], schema: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate a request body against a JSON schema.

    Args:
        data: Parsed JSON body (None when the request had no body)
        schema: One of the schemas in this module

    Returns:
        The validated payload

    Raises:
        ValidationError: with the most relevant schema violation as message
    """
    if data is None:
        data = {}

    error = jsonschema.exceptions.best_match(
        jsonschema.Draft7Validator(schema).iter_errors(data)
    )
    if error is not None:
        field = '.'.join(str(p) for p in error.absolute_path)
        message = f"{field}: {error.message}" if field else error.message
        raise ValidationError(message)

    return data
