"""
Declarative relay query sent in ``REQ`` frames.

A [SubscriptionFilter][nostrkit.models.filter.SubscriptionFilter] is a pure
value: two filters with the same fields are equal and hash alike. Fields left
as ``None`` are omitted from the wire object, and an all-``None`` filter
serializes to ``{}`` (match everything).

See Also:
    [nostrkit.client.client.Client.subscribe][]: Broadcasts filters to relays.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from ._validation import validate_instance, validate_int, validate_non_negative_int
from .event import UnsignedEvent


def _freeze_strings(values: Iterable[str] | None, name: str) -> tuple[str, ...] | None:
    if values is None:
        return None
    if isinstance(values, str):
        raise TypeError(f"{name} must be a collection of str, got str")
    frozen = tuple(values)
    for i, value in enumerate(frozen):
        validate_instance(value, str, f"{name}[{i}]")
    return frozen


def _freeze_kinds(values: Iterable[int] | None) -> tuple[int, ...] | None:
    if values is None:
        return None
    frozen = tuple(values)
    for i, value in enumerate(frozen):
        validate_non_negative_int(value, f"kinds[{i}]")
    return frozen


@dataclass(frozen=True, slots=True)
class SubscriptionFilter:
    """A NIP-01 filter object.

    Attributes:
        ids: Event id prefixes.
        authors: Author pubkey prefixes.
        kinds: Exact event kinds.
        e: Referenced event ids (``#e`` tag filter).
        p: Referenced pubkeys (``#p`` tag filter).
        since: Inclusive lower bound on ``created_at``.
        until: Inclusive upper bound on ``created_at``.
        limit: Maximum number of stored events the relay should return.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If ``limit`` or a kind is negative, or ``since > until``.

    Examples:
        ```python
        f = SubscriptionFilter(kinds=[1], authors=["ab12"], limit=10)
        f.to_dict()  # {'authors': ['ab12'], 'kinds': [1], 'limit': 10}
        ```
    """

    ids: tuple[str, ...] | None = None
    authors: tuple[str, ...] | None = None
    kinds: tuple[int, ...] | None = None
    e: tuple[str, ...] | None = None
    p: tuple[str, ...] | None = None
    since: int | None = None
    until: int | None = None
    limit: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "ids", _freeze_strings(self.ids, "ids"))
        object.__setattr__(self, "authors", _freeze_strings(self.authors, "authors"))
        object.__setattr__(self, "kinds", _freeze_kinds(self.kinds))
        object.__setattr__(self, "e", _freeze_strings(self.e, "e"))
        object.__setattr__(self, "p", _freeze_strings(self.p, "p"))
        if self.since is not None:
            validate_int(self.since, "since")
        if self.until is not None:
            validate_int(self.until, "until")
        if self.limit is not None:
            validate_non_negative_int(self.limit, "limit")
        if self.since is not None and self.until is not None and self.since > self.until:
            raise ValueError(f"since ({self.since}) must not be greater than until ({self.until})")

    def to_dict(self) -> dict[str, Any]:
        """Return the wire object, omitting absent fields."""
        result: dict[str, Any] = {}
        if self.ids is not None:
            result["ids"] = list(self.ids)
        if self.authors is not None:
            result["authors"] = list(self.authors)
        if self.kinds is not None:
            result["kinds"] = list(self.kinds)
        if self.e is not None:
            result["#e"] = list(self.e)
        if self.p is not None:
            result["#p"] = list(self.p)
        if self.since is not None:
            result["since"] = self.since
        if self.until is not None:
            result["until"] = self.until
        if self.limit is not None:
            result["limit"] = self.limit
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SubscriptionFilter:
        """Parse a wire filter object.

        Unknown keys (other tag filters, NIP extensions) are ignored.

        Raises:
            TypeError: If *data* is not a mapping or a field has the wrong type.
            ValueError: If a field value is out of range.
        """
        validate_instance(data, Mapping, "filter")
        return cls(
            ids=data.get("ids"),
            authors=data.get("authors"),
            kinds=data.get("kinds"),
            e=data.get("#e"),
            p=data.get("#p"),
            since=data.get("since"),
            until=data.get("until"),
            limit=data.get("limit"),
        )

    def matches(self, event: UnsignedEvent) -> bool:
        """Evaluate the filter against *event* locally.

        ``ids`` is only consulted when *event* carries an ``id`` (a
        [SignedEvent][nostrkit.models.event.SignedEvent]). ``limit`` does
        not apply to a single event.
        """
        if self.ids is not None:
            event_id = getattr(event, "id", None)
            if event_id is None or not any(event_id.startswith(prefix) for prefix in self.ids):
                return False
        if self.authors is not None and not any(
            event.pubkey.startswith(prefix) for prefix in self.authors
        ):
            return False
        if self.kinds is not None and event.kind not in self.kinds:
            return False
        if self.since is not None and event.created_at < self.since:
            return False
        if self.until is not None and event.created_at > self.until:
            return False
        if self.e is not None and not _references(event, "e", self.e):
            return False
        return self.p is None or _references(event, "p", self.p)


def _references(event: UnsignedEvent, name: str, values: tuple[str, ...]) -> bool:
    wanted = set(values)
    return any(len(tag) >= 2 and tag[0] == name and tag[1] in wanted for tag in event.tags)
