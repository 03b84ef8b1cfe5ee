from datetime import datetime, timezone
from typing import Any, Dict, List, Type

from tiyende.src import schemas
from tiyende.src.exceptions import APIException


def makeExceptionResponses(exceptions: List[Type[APIException]]) -> Dict[int, dict]:
    """
    Generate OpenAPI response documentation from a list of APIException classes.

    Exceptions that share a status code are grouped under that code, each
    one contributing a named example built from its class attributes.

    Args:
        exceptions (List[Type[APIException]]): Exception classes raised by the endpoint.

    Returns:
        Dict[int, dict]: A dictionary of OpenAPI response specs grouped by status code.
    """
    responses = {}

    for exception in exceptions:
        status_code = exception.status_code
        example_key = exception.__name__
        example_value = {
            "summary": str(exception.headers),
            "value": {"detail": exception.detail},
        }

        if status_code not in responses:
            responses[status_code] = {
                "model": schemas.ErrorResponse,
                "content": {
                    "application/json": {"examples": {example_key: example_value}}
                },
            }
        else:
            responses[status_code]["content"]["application/json"]["examples"][
                example_key
            ] = example_value

    return responses


def enumStr(enumClass) -> str:
    """
    Convert an Enum class into a comma-separated string of its members.

    Example:
        >>> enumStr(PaymentMethod)
        'CASH: cash, CARD: card, MOBILE_MONEY: mobile-money'
    """
    return ", ".join(f"{x.name}: {x.value}" for x in enumClass)


def toUTC(value: datetime | None) -> datetime | None:
    """
    Normalise a datetime to an aware UTC datetime.

    Naive values are taken to already be in UTC, which is also how naive
    values read back from SQLite should be interpreted.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isValidTransition(
    transitions: dict[Any, list[Any]], old_state: Any, new_state: Any
) -> bool:
    """
    Check if a state transition is valid.

    Args:
        transitions (dict[Any, list[Any]]): Mapping of valid transitions.
            Example:
                {
                    "pending": ["confirmed", "cancelled"],
                    "confirmed": ["completed", "cancelled"],
                }
        old_state (Any): Current state value.
        new_state (Any): Desired new state value.

    Returns:
        bool: True if transition is valid, False otherwise.

    Notes:
        - If `old_state` is not in the transitions mapping, this will return False.
    """
    if not transitions:
        return False
    if old_state not in transitions:
        return False
    return new_state in transitions[old_state]


def percentChange(current: float, previous: float) -> float | None:
    """
    Relative change from `previous` to `current` in percent, rounded to one
    decimal place. None when there is no previous activity to compare with.

    Example:
        >>> percentChange(110, 100)
        10.0
        >>> percentChange(5, 0) is None
        True
    """
    if not previous:
        return None
    return round((current - previous) / previous * 100, 1)
