"""Content registry shared by one render tree.

A ``Bay`` maps portal names to the fragments mounted into them. It is bound
to an explicit ``Context`` rather than held globally, so separate requests
never see each other's content.
"""

from __future__ import annotations

from typing import Any

from .exceptions import BayNotFoundError

_BAY_KEY = object()


class Context:
    """Keyed values visible to a render node and its descendants."""

    def __init__(self, parent: Context | None = None) -> None:
        self.parent = parent
        self._values: dict[object, Any] = {}

    def set(self, key: object, value: Any) -> None:
        self._values[key] = value

    def get(self, key: object) -> Any | None:
        """Look ``key`` up here, then in the ancestors."""
        context: Context | None = self
        while context is not None:
            if key in context._values:
                return context._values[key]
            context = context.parent
        return None

    def child(self) -> Context:
        return Context(parent=self)


class Pod:
    """Handle for one fragment mounted into a named portal."""

    def __init__(self, bay: Bay, name: str, fragment: Any) -> None:
        self.bay = bay
        self.name = name
        self.fragment = fragment
        self.mounted = True

    def update(self, fragment: Any) -> None:
        """Swap the fragment in place, keeping its position in the portal."""
        self.fragment = fragment

    def retarget(self, name: str) -> None:
        """Move this pod to another portal, appending it there."""
        if not self.mounted or name == self.name:
            return
        self.bay._detach(self)
        self.name = name
        self.bay._attach(self)

    def unmount(self) -> None:
        if self.mounted:
            self.bay._detach(self)
            self.mounted = False


class Bay:
    """Named portals and the pods mounted into them, in mount order."""

    def __init__(self) -> None:
        self._pods: dict[str, list[Pod]] = {}

    def mount(self, name: str, fragment: Any) -> Pod:
        pod = Pod(self, name, fragment)
        self._attach(pod)
        return pod

    def contents(self, name: str) -> list[Any]:
        """Return the fragments a portal renders, oldest mount first."""
        return [pod.fragment for pod in self._pods.get(name, [])]

    def names(self) -> list[str]:
        return list(self._pods)

    def _attach(self, pod: Pod) -> None:
        self._pods.setdefault(pod.name, []).append(pod)

    def _detach(self, pod: Pod) -> None:
        pods = self._pods.get(pod.name, [])
        if pod in pods:
            pods.remove(pod)
        if not pods:
            self._pods.pop(pod.name, None)


def create_bay(context: Context) -> Bay:
    """Create a bay and bind it to ``context`` for its descendants."""
    bay = Bay()
    context.set(_BAY_KEY, bay)
    return bay


def get_bay(context: Context) -> Bay:
    """Return the bay bound to ``context`` or one of its ancestors.

    Raises:
        BayNotFoundError: If no ancestor called ``create_bay``
    """
    bay = context.get(_BAY_KEY)
    if bay is None:
        msg = "Bay state not found. Make sure to call create_bay() in your root layout."
        raise BayNotFoundError(msg)
    return bay
