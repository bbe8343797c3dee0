"""
Unauthorized-Response Observer.

Installs an httpx response event hook that watches every response on the
shared client.  A 401 from any endpoint invokes the callback (which
destroys the session and redirects to login) and then raises
``httpx.HTTPStatusError`` so the code that issued the request still sees
the failure.

Usage::

    sub = attach_unauthorized_observer(client, on_unauthorized)
    ...
    sub.dispose()
"""

from __future__ import annotations

from typing import Callable

import httpx

from crm_portal.events import Subscription

_OBSERVER_MARKER: str = "_crm_unauthorized_observer"


def attach_unauthorized_observer(
    client: httpx.Client,
    on_unauthorized: Callable[[httpx.Response], None],
) -> Subscription:
    """Attach the 401 observer to *client* and return its handle.

    Any observer previously attached to the same client is detached
    first, so re-initialisation never stacks duplicate redirects.
    """
    detach_unauthorized_observers(client)

    def _observe(response: httpx.Response) -> None:
        if response.status_code != httpx.codes.UNAUTHORIZED:
            return
        # Hooks run before httpx reads the body; read it so callers can
        # still inspect the error payload.
        response.read()
        on_unauthorized(response)
        response.raise_for_status()

    setattr(_observe, _OBSERVER_MARKER, True)
    hooks = client.event_hooks
    hooks.setdefault("response", []).append(_observe)
    client.event_hooks = hooks

    def _detach() -> None:
        current = client.event_hooks
        current["response"] = [h for h in current.get("response", []) if h is not _observe]
        client.event_hooks = current

    return Subscription(_detach)


def detach_unauthorized_observers(client: httpx.Client) -> int:
    """Remove every 401 observer from *client*; return how many were removed."""
    hooks = client.event_hooks
    response_hooks = hooks.get("response", [])
    kept = [h for h in response_hooks if not getattr(h, _OBSERVER_MARKER, False)]
    removed = len(response_hooks) - len(kept)
    hooks["response"] = kept
    client.event_hooks = hooks
    return removed
