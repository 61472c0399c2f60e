"""
Where: switchyard/pipeline/core/combinators.py
What: The unit contract and the two sequential composition strategies.
Why: Keep control flow between units in one place so every unit can stay a
     plain function over the Context.
"""

import inspect
import logging
from typing import Awaitable, Callable, Iterable, List, Optional, Union

from ..models.context import Context
from .exceptions import InvalidUnitResultError, PipelineConfigurationError

logger = logging.getLogger("switchyard.pipeline")

UnitResult = Optional[Context]
Unit = Callable[[Context], Union[Awaitable[UnitResult], UnitResult]]

# Attribute set on units whose predicate reads the response facet.
INSPECTS_RESPONSE_ATTR = "inspects_response"


def inspects_response(unit: Unit) -> bool:
    return bool(getattr(unit, INSPECTS_RESPONSE_ATTR, False))


async def invoke(unit: Unit, context: Context) -> Context:
    """
    Call ``unit`` and normalize its result.

    Sync and async units are both accepted. ``None`` means the unit worked on
    ``context`` in place.
    """
    result = unit(context)
    if inspect.isawaitable(result):
        result = await result
    if result is None:
        return context
    if not isinstance(result, Context):
        raise InvalidUnitResultError(unit, result)
    return result


def _validate_units(combinator: str, units: Iterable[Unit]) -> List[Unit]:
    if isinstance(units, (str, bytes)) or not isinstance(units, Iterable):
        raise PipelineConfigurationError(f"{combinator} expects a sequence of units")
    members = list(units)
    for index, unit in enumerate(members):
        if not callable(unit):
            raise PipelineConfigurationError(
                f"{combinator}: member {index} is not callable ({type(unit).__name__})"
            )
    if members and inspects_response(members[0]):
        logger.warning(
            "%s: first member inspects the response but nothing earlier in this stage sets one",
            combinator,
        )
    return members


def chain_all(units: Iterable[Unit]) -> Unit:
    """
    Compose ``units`` so that every one of them runs, in order.

    A response set early does not stop the chain; later units (compression,
    logging) still observe and may transform it. Failures propagate as-is and
    mutations made before the failure stay on the Context.
    """
    members = _validate_units("chain_all", units)

    async def chain_all_unit(context: Context) -> Context:
        for unit in members:
            context = await invoke(unit, context)
        return context

    chain_all_unit.units = tuple(members)
    return chain_all_unit


def chain_until_response(units: Iterable[Unit]) -> Unit:
    """
    Compose ``units`` so that execution stops at the first one that responds.

    Earlier members take precedence. When no member responds the Context is
    returned unresponded and the caller decides the fallback.
    """
    members = _validate_units("chain_until_response", units)
    for index, unit in enumerate(members[1:], start=1):
        if inspects_response(unit):
            logger.warning(
                "chain_until_response: member %d inspects the response but can only "
                "ever see unresponded contexts here",
                index,
            )

    async def chain_until_response_unit(context: Context) -> Context:
        for unit in members:
            context = await invoke(unit, context)
            if context.responded:
                break
        return context

    chain_until_response_unit.units = tuple(members)
    return chain_until_response_unit
