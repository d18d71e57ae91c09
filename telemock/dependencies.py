"""
Dependency bridge: hand externally built collaborators to aiogram handlers.

Collaborators reach handlers through the same mechanism production code
uses, ``dp["name"] = service`` workflow data and the dispatcher's FSM
storage, so handlers declare them as keyword arguments exactly as they
would when run with ``dp.start_polling(bot)``.
"""
import logging
import re
from typing import Any

from aiogram import Dispatcher
from aiogram.fsm.storage.base import BaseStorage

from telemock.errors import SetupFailure

logger = logging.getLogger("telemock.dependencies")

# Names aiogram itself puts into handler data
RESERVED_NAMES = frozenset({
    "bot",
    "bots",
    "dispatcher",
    "event_update",
    "event_router",
    "event_context",
    "event_chat",
    "event_from_user",
    "event_thread_id",
    "handler",
    "state",
    "raw_state",
    "fsm_storage",
})

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def collaborator_name(collaborator: Any) -> str:
    """Workflow data key for a collaborator: its class name in snake_case."""
    return _CAMEL_BOUNDARY.sub("_", type(collaborator).__name__).lower()


class DependencyBridge:
    """Ordered set of collaborators applied to one dispatcher."""

    def __init__(self, dispatcher: Dispatcher) -> None:
        self._dispatcher = dispatcher
        self._default_storage = dispatcher.fsm.storage
        self._storage: BaseStorage | None = None
        self._named: dict[str, Any] = {}

    @property
    def storage(self) -> BaseStorage:
        return self._dispatcher.fsm.storage

    @property
    def workflow_data(self) -> dict[str, Any]:
        """Collaborators currently injected, by name."""
        return dict(self._named)

    def set(self, *collaborators: Any, **named: Any) -> None:
        """Replace the injected collaborators.

        A BaseStorage becomes the FSM storage; other positional
        collaborators are keyed by ``collaborator_name``; keywords are
        keyed as given. Later entries win on name clashes.
        """
        storage = None
        resolved: dict[str, Any] = {}
        for collaborator in collaborators:
            if isinstance(collaborator, BaseStorage):
                storage = collaborator
                continue
            resolved[collaborator_name(collaborator)] = collaborator
        resolved.update(named)

        clashes = sorted(RESERVED_NAMES.intersection(resolved))
        if clashes:
            raise SetupFailure(f"Collaborator names reserved by aiogram: {', '.join(clashes)}")

        for name in self._named:
            if name not in resolved:
                del self._dispatcher[name]
        for name, collaborator in resolved.items():
            self._dispatcher[name] = collaborator

        self._dispatcher.fsm.storage = storage or self._default_storage
        self._storage = storage
        self._named = resolved

        logger.debug(
            "Injected collaborators: %s%s",
            ", ".join(resolved) or "(none)",
            " + custom FSM storage" if storage is not None else "",
        )
