"""Structural validation of signal descriptions.

Runs before compilation so a malformed description fails before any store
interaction happens.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from .description import Action, Concurrent, Step
from .errors import DescriptionError

Location = tuple[int | str, ...]


def analyze(description: Any) -> None:
    """Raise :class:`DescriptionError` if ``description`` is not a valid signal."""

    if not _is_sequence(description):
        raise DescriptionError(
            f"Signal description must be a list or tuple, got {type(description).__name__}"
        )
    _analyze_sequence(description, ())


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _missing(entry: Any, location: Location) -> DescriptionError:
    index = location[-1] if location else 0
    shown = f" ({entry!r})" if isinstance(entry, str) else ""
    return DescriptionError(
        f'Action number "{index}"{shown} does not exist. Check that you have spelled it correctly!',
        location=location,
    )


def _analyze_sequence(entries: Sequence[Any], location: Location) -> None:
    for index, entry in enumerate(entries):
        here = (*location, index)
        if entry is None or isinstance(entry, str):
            raise _missing(entry, here)
        if isinstance(entry, Mapping):
            raise DescriptionError(
                "Output maps must be attached to a step with step(func, name=[...])",
                location=here,
            )
        if isinstance(entry, Concurrent):
            _analyze_group(entry.members, here)
        elif _is_sequence(entry):
            _analyze_group(entry, here)
        else:
            _analyze_step(entry, here)


def _analyze_group(members: Sequence[Any], location: Location) -> None:
    if not members:
        raise DescriptionError("Concurrent group is empty", location=location)
    for index, member in enumerate(members):
        here = (*location, index)
        if member is None or isinstance(member, str):
            raise _missing(member, here)
        if isinstance(member, Concurrent) or _is_sequence(member):
            raise DescriptionError(
                "Concurrent groups cannot be nested directly; wrap them in a step output",
                location=here,
            )
        if isinstance(member, Mapping):
            raise DescriptionError(
                "Output maps must be attached to a step with step(func, name=[...])",
                location=here,
            )
        _analyze_step(member, here)


def _analyze_step(entry: Any, location: Location) -> None:
    if isinstance(entry, Step):
        target = entry.target
        if target is None or isinstance(target, str):
            raise _missing(target, location)
        if not isinstance(target, Action) and not callable(target):
            raise DescriptionError(
                f"Step target must be callable, got {type(target).__name__}", location=location
            )
        if entry.outputs is not None:
            _analyze_outputs(entry.outputs, location)
        return

    if isinstance(entry, Action) or callable(entry):
        return

    raise DescriptionError(
        f"Unsupported signal entry of type {type(entry).__name__}", location=location
    )


def _analyze_outputs(outputs: Any, location: Location) -> None:
    if not isinstance(outputs, Mapping):
        raise DescriptionError("Step outputs must be a mapping", location=location)
    for name, subtree in outputs.items():
        here = (*location, "outputs", name)
        if not isinstance(name, str) or not name:
            raise DescriptionError("Output names must be non-empty strings", location=here)
        if not _is_sequence(subtree):
            raise DescriptionError(
                f"Output {name!r} must be a list or tuple of entries", location=here
            )
        _analyze_sequence(subtree, here)
