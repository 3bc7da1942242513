"""Gamification action models

Actions are reported by the back-office modules (incidents, maintenance,
quality, lost items, procedures) after the business operation succeeded.
"""
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from hotel_gamification.exceptions import ValidationError


class ActionType(str, Enum):
    """Closed set of actions that earn points"""
    CREATE_INCIDENT = "CREATE_INCIDENT"
    RESOLVE_INCIDENT = "RESOLVE_INCIDENT"
    CREATE_MAINTENANCE = "CREATE_MAINTENANCE"
    COMPLETE_MAINTENANCE = "COMPLETE_MAINTENANCE"
    COMPLETE_QUALITY_CHECK = "COMPLETE_QUALITY_CHECK"
    REGISTER_LOST_ITEM = "REGISTER_LOST_ITEM"
    RETURN_LOST_ITEM = "RETURN_LOST_ITEM"
    CREATE_PROCEDURE = "CREATE_PROCEDURE"
    READ_PROCEDURE = "READ_PROCEDURE"
    VALIDATE_PROCEDURE = "VALIDATE_PROCEDURE"
    LOGIN = "LOGIN"
    HELP_COLLEAGUE = "HELP_COLLEAGUE"
    RECEIVE_THANKS = "RECEIVE_THANKS"
    COMPLETE_WEEKLY_GOAL = "COMPLETE_WEEKLY_GOAL"


CRITICAL_SEVERITY = "critical"


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class CreateIncidentAction(_Action):
    type: Literal["CREATE_INCIDENT"] = "CREATE_INCIDENT"
    severity: Optional[str] = None


class ResolveIncidentAction(_Action):
    type: Literal["RESOLVE_INCIDENT"] = "RESOLVE_INCIDENT"
    severity: Optional[str] = None
    resolution_time: Optional[float] = Field(default=None, ge=0)  # minutes


class CreateMaintenanceAction(_Action):
    type: Literal["CREATE_MAINTENANCE"] = "CREATE_MAINTENANCE"


class CompleteMaintenanceAction(_Action):
    type: Literal["COMPLETE_MAINTENANCE"] = "COMPLETE_MAINTENANCE"
    before_schedule: bool = False


class CompleteQualityCheckAction(_Action):
    type: Literal["COMPLETE_QUALITY_CHECK"] = "COMPLETE_QUALITY_CHECK"
    score: float = Field(ge=0, le=100)


class RegisterLostItemAction(_Action):
    type: Literal["REGISTER_LOST_ITEM"] = "REGISTER_LOST_ITEM"


class ReturnLostItemAction(_Action):
    type: Literal["RETURN_LOST_ITEM"] = "RETURN_LOST_ITEM"


class CreateProcedureAction(_Action):
    type: Literal["CREATE_PROCEDURE"] = "CREATE_PROCEDURE"


class ReadProcedureAction(_Action):
    type: Literal["READ_PROCEDURE"] = "READ_PROCEDURE"


class ValidateProcedureAction(_Action):
    type: Literal["VALIDATE_PROCEDURE"] = "VALIDATE_PROCEDURE"


class LoginAction(_Action):
    type: Literal["LOGIN"] = "LOGIN"


class HelpColleagueAction(_Action):
    type: Literal["HELP_COLLEAGUE"] = "HELP_COLLEAGUE"


class ReceiveThanksAction(_Action):
    type: Literal["RECEIVE_THANKS"] = "RECEIVE_THANKS"


class CompleteWeeklyGoalAction(_Action):
    """Weekly goal reward; xp_reward overrides the default table value"""
    type: Literal["COMPLETE_WEEKLY_GOAL"] = "COMPLETE_WEEKLY_GOAL"
    challenge_id: Optional[str] = None
    xp_reward: Optional[int] = Field(default=None, ge=0)


class UnknownAction(_Action):
    """Anything outside ActionType. Scores nothing."""
    type: str
    payload: dict[str, Any] = Field(default_factory=dict)


KnownAction = Annotated[
    Union[
        CreateIncidentAction,
        ResolveIncidentAction,
        CreateMaintenanceAction,
        CompleteMaintenanceAction,
        CompleteQualityCheckAction,
        RegisterLostItemAction,
        ReturnLostItemAction,
        CreateProcedureAction,
        ReadProcedureAction,
        ValidateProcedureAction,
        LoginAction,
        HelpColleagueAction,
        ReceiveThanksAction,
        CompleteWeeklyGoalAction,
    ],
    Field(discriminator="type"),
]

GamificationAction = Union[KnownAction, UnknownAction]

_known_action_adapter = TypeAdapter(KnownAction)
_KNOWN_TYPES = {action_type.value for action_type in ActionType}


def parse_action(payload: dict[str, Any]) -> GamificationAction:
    """
    Build an action model from a raw payload sent by the UI

    Unrecognised action types become UnknownAction. Known types with invalid
    fields raise ValidationError.
    """
    action_type = str(payload.get("type", ""))
    if action_type not in _KNOWN_TYPES:
        extra = {k: v for k, v in payload.items() if k != "type"}
        return UnknownAction(type=action_type, payload=extra)

    try:
        return _known_action_adapter.validate_python(payload)
    except PydanticValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != action_type) or None
        raise ValidationError(
            message=first.get("msg", str(e)),
            field=field,
            value=first.get("input"),
            operation="parse_action",
        ) from e


def is_known_action(action: GamificationAction) -> bool:
    return action.type in _KNOWN_TYPES
