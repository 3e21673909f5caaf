"""
lending_registry.py
"""

from __future__ import annotations
import abc
import copy
import datetime
import enum
import logging
import threading
from dataclasses import dataclass, field
from typing import List, Dict, Optional, NamedTuple, Set

import pandas as pd

# Configuration
DEFAULT_MAX_ITEMS = 3
BORROW_MESSAGE = "You have borrowed: {title}"
RETURN_MESSAGE = "You have returned: {title}"

# Logging
logger = logging.getLogger("LendingRegistry")


def configure_logging(level: int = logging.INFO) -> None:
    """
    Configure root logging for scripts that embed the registry.

    The module never installs handlers on import; call this once from the
    embedding application if plain console output is wanted.
    """
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


# ---------------- Outcomes ----------------
class Outcome(enum.Enum):
    """Distinguishable results of registry operations."""
    OK = "ok"
    NOT_FOUND = "not_found"
    ITEM_UNAVAILABLE = "item_unavailable"
    BORROW_LIMIT_EXCEEDED = "borrow_limit_exceeded"
    NOT_BORROWED_BY_MEMBER = "not_borrowed_by_member"
    DUPLICATE_ID = "duplicate_id"


class Result(NamedTuple):
    """
    Outcome of a registry operation plus a human-readable message.

    Unpacks as ``outcome, message = result``.
    """
    outcome: Outcome
    message: str

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK


# ---------------- Entities ----------------
@dataclass
class Item:
    """A lendable catalog entry. Starts out available."""
    id: str
    title: str
    author: str
    available: bool = True

    def mark_borrowed(self) -> None:
        # caller has already checked availability
        self.available = False

    def mark_returned(self) -> None:
        self.available = True


@dataclass
class Member:
    """
    A roster entry entitled to hold up to `max_items` items at once.

    `held_items` is a set of item ids; order is irrelevant.
    """
    id: str
    name: str
    max_items: int = DEFAULT_MAX_ITEMS
    held_items: Set[str] = field(default_factory=set)

    def __post_init__(self):
        if isinstance(self.max_items, bool) or not isinstance(self.max_items, int) or self.max_items < 1:
            raise ValueError(f"max_items must be a positive integer, got {self.max_items!r}")

    @property
    def held_count(self) -> int:
        return len(self.held_items)

    def can_borrow(self) -> bool:
        return len(self.held_items) < self.max_items

    def add_held_item(self, item_id: str) -> None:
        self.held_items.add(item_id)

    def remove_held_item(self, item_id: str) -> bool:
        """
        Remove `item_id` from the held set.

        Returns True if the item was held and has been removed, False otherwise.
        """
        if item_id not in self.held_items:
            return False
        self.held_items.discard(item_id)
        return True

    def has_item(self, item_id: str) -> bool:
        return item_id in self.held_items


# ---------------- Notification channels ----------------
class NotificationChannel(abc.ABC):
    """
    Sink for messages sent to members after a successful borrow or return.

    Implementations are supplied by the embedding application and must stay
    valid for the lifetime of the registry that uses them.
    """

    @abc.abstractmethod
    def notify(self, recipient_id: str, message: str) -> None:
        """Deliver `message` to the member identified by `recipient_id`."""


class LoggingNotificationChannel(NotificationChannel):
    """Channel that writes each notification to the module logger."""

    def notify(self, recipient_id: str, message: str) -> None:
        logger.info("Notify %s: %s", recipient_id, message)


class LendingRegistry:
    """
    LendingRegistry manages a catalog of items and a roster of members in memory.

    It validates borrow/return requests, updates the item and the member together
    so that availability and holdership never diverge, and notifies members through
    an injected NotificationChannel. All operations report a Result instead of
    raising; lookups return copies so callers cannot mutate registry state.
    """

    def __init__(self,
                 channel: Optional[NotificationChannel] = None,
                 default_max_items: int = DEFAULT_MAX_ITEMS):
        """
        Initialize the LendingRegistry.

        Args:
            channel: notification channel invoked after each successful borrow/return.
                Defaults to a LoggingNotificationChannel. Not owned by the registry.
            default_max_items: borrowing cap given to members registered without one.
        """
        if channel is None:
            channel = LoggingNotificationChannel()
        if not isinstance(channel, NotificationChannel):
            raise TypeError(f"channel must be a NotificationChannel, got {type(channel).__name__}")
        if isinstance(default_max_items, bool) or not isinstance(default_max_items, int) or default_max_items < 1:
            raise ValueError(f"default_max_items must be a positive integer, got {default_max_items!r}")

        self.channel = channel
        self.default_max_items = default_max_items

        self._items: Dict[str, Item] = {}
        self._members: Dict[str, Member] = {}
        # rows: timestamp, member_id, item_id, action
        self._lending_log: List[Dict[str, str]] = []
        # guards both mappings and the log; they change together
        self._lock = threading.RLock()

    # -------------- Internal helpers ----------------
    def _notify(self, member_id: str, message: str) -> None:
        """
        Send a notification, logging rather than propagating any failure.

        Called only after the mutation has been committed and the lock released.
        """
        try:
            self.channel.notify(member_id, message)
        except Exception:
            logger.warning("Notification to %s failed: %r", member_id, message, exc_info=True)

    def _append_log(self, member_id: str, item_id: str, action: str) -> None:
        now = datetime.datetime.now(datetime.timezone.utc)
        self._lending_log.append({"timestamp": now.isoformat(), "member_id": member_id,
                                  "item_id": item_id, "action": action})

    # ---------------- Registration ----------------
    def register_item(self, item_id: str, title: str, author: str) -> Result:
        """
        Add a new item to the catalog.

        Returns an OK result on success, DUPLICATE_ID if an item with the same ID
        already exists (the existing item is left untouched).
        """
        with self._lock:
            if item_id in self._items:
                logger.debug("Attempt to register existing item: %s", item_id)
                return Result(Outcome.DUPLICATE_ID, f"Item already exists: {item_id}")
            self._items[item_id] = Item(item_id, title, author)
        logger.info("Registered item %s", item_id)
        return Result(Outcome.OK, f"Item '{title}' registered as {item_id}.")

    def register_member(self, member_id: str, name: str, max_items: Optional[int] = None) -> Result:
        """
        Register a new member.

        Args:
            member_id: unique member identifier.
            name: display name.
            max_items: borrowing cap; the registry's default_max_items when omitted.

        Returns an OK result on success, DUPLICATE_ID if the member ID already exists.
        Raises ValueError for a non-positive cap.
        """
        cap = self.default_max_items if max_items is None else max_items
        member = Member(member_id, name, cap)
        with self._lock:
            if member_id in self._members:
                logger.debug("Attempt to register existing member: %s", member_id)
                return Result(Outcome.DUPLICATE_ID, f"Member already exists: {member_id}")
            self._members[member_id] = member
        logger.info("Registered member %s (max %d items)", member_id, cap)
        return Result(Outcome.OK, f"Member {member_id} registered.")

    # ---------------- Lookups ----------------
    def find_item(self, item_id: str) -> Optional[Item]:
        """Return a snapshot of the item, or None if it does not exist."""
        with self._lock:
            item = self._items.get(item_id)
            return copy.copy(item) if item is not None else None

    def find_member(self, member_id: str) -> Optional[Member]:
        """Return a snapshot of the member (held set copied), or None."""
        with self._lock:
            member = self._members.get(member_id)
            return copy.deepcopy(member) if member is not None else None

    def available_count(self) -> int:
        with self._lock:
            return sum(1 for item in self._items.values() if item.available)

    # ---------------- Core operations ----------------
    def borrow(self, member_id: str, item_id: str) -> Result:
        """
        Lend an item to a member.

        Checks existence, availability and the member's cap before touching any
        state; then marks the item borrowed and records it on the member as one
        step. The member is notified once the change is committed.
        """
        with self._lock:
            member = self._members.get(member_id)
            item = self._items.get(item_id)
            if member is None:
                logger.debug("Borrow rejected, unknown member %s", member_id)
                return Result(Outcome.NOT_FOUND, f"Member not found: {member_id}")
            if item is None:
                logger.debug("Borrow rejected, unknown item %s", item_id)
                return Result(Outcome.NOT_FOUND, f"Item not found: {item_id}")
            if not item.available:
                logger.debug("Borrow rejected, %s is already issued", item_id)
                return Result(Outcome.ITEM_UNAVAILABLE, f"Item '{item.title}' ({item_id}) is already issued.")
            if not member.can_borrow():
                logger.debug("Borrow rejected, %s is at limit %d", member_id, member.max_items)
                return Result(Outcome.BORROW_LIMIT_EXCEEDED,
                              f"Member {member_id} already holds {member.max_items} item(s).")

            item.mark_borrowed()
            member.add_held_item(item_id)
            self._append_log(member_id, item_id, "borrow")
            title = item.title

        logger.info("Borrowed %s to %s", item_id, member_id)
        self._notify(member_id, BORROW_MESSAGE.format(title=title))
        return Result(Outcome.OK, f"Item '{title}' issued to {member_id}.")

    def return_item(self, member_id: str, item_id: str) -> Result:
        """
        Process an item return from a member.

        Fails with NOT_BORROWED_BY_MEMBER when the member does not hold the item,
        whether it was never lent or is held by someone else.
        """
        with self._lock:
            member = self._members.get(member_id)
            item = self._items.get(item_id)
            if member is None:
                logger.debug("Return rejected, unknown member %s", member_id)
                return Result(Outcome.NOT_FOUND, f"Member not found: {member_id}")
            if item is None:
                logger.debug("Return rejected, unknown item %s", item_id)
                return Result(Outcome.NOT_FOUND, f"Item not found: {item_id}")
            if not member.has_item(item_id):
                logger.debug("Return rejected, %s does not hold %s", member_id, item_id)
                return Result(Outcome.NOT_BORROWED_BY_MEMBER,
                              f"Member {member_id} does not have item {item_id} borrowed.")

            item.mark_returned()
            member.remove_held_item(item_id)
            self._append_log(member_id, item_id, "return")
            title = item.title

        logger.info("Item %s returned by %s", item_id, member_id)
        self._notify(member_id, RETURN_MESSAGE.format(title=title))
        return Result(Outcome.OK, f"Item '{title}' returned by {member_id}.")

    # ---------------- Reports / Queries ----------------
    def search_items(self, query: str) -> List[Item]:
        """
        Search items by title or author using a case-insensitive substring match.

        Returns snapshots of the matching items in registration order; a blank
        query matches nothing.
        """
        q = (query or "").strip().lower()
        if q == "":
            return []
        with self._lock:
            return [copy.copy(item) for item in self._items.values()
                    if q in item.title.lower() or q in item.author.lower()]

    def members_with_held_items(self) -> List[Dict]:
        """
        Return a list of members who currently hold one or more items.

        Each entry contains the member ID, name and the sorted list of held item IDs.
        """
        with self._lock:
            return [{"Member ID": m.id, "Name": m.name, "HeldItems": sorted(m.held_items)}
                    for m in self._members.values() if m.held_items]

    def export_report_items(self) -> pd.DataFrame:
        """
        Produce a DataFrame suitable for reporting the catalog.

        The returned DataFrame contains human-friendly Availability values.
        """
        cols = ["Item ID", "Title", "Author", "Availability"]
        with self._lock:
            rows = [{"Item ID": i.id, "Title": i.title, "Author": i.author,
                     "Availability": "Available" if i.available else "Issued"}
                    for i in self._items.values()]
        return pd.DataFrame(rows, columns=cols)

    def export_report_members(self) -> pd.DataFrame:
        """
        Build a DataFrame summarizing members and their current holdings.

        Returns columns: Member ID, Name, MaxItems, HeldCount, HeldItems (comma separated).
        """
        cols = ["Member ID", "Name", "MaxItems", "HeldCount", "HeldItems"]
        with self._lock:
            rows = [{"Member ID": m.id, "Name": m.name, "MaxItems": m.max_items,
                     "HeldCount": m.held_count, "HeldItems": ",".join(sorted(m.held_items))}
                    for m in self._members.values()]
        return pd.DataFrame(rows, columns=cols)

    def export_lending_log(self) -> pd.DataFrame:
        """
        Return the history of successful borrows and returns, oldest first.

        Columns: timestamp (ISO-8601, UTC), member_id, item_id, action.
        """
        with self._lock:
            rows = list(self._lending_log)
        return pd.DataFrame(rows, columns=["timestamp", "member_id", "item_id", "action"])
