# src/marginalia/editor/versions.py
"""Version history: manual restore points, debounced autosaves and restore."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime, timedelta

from marginalia.config import VersionConfig, config
from marginalia.core.logs import EventType, get_event_logger
from marginalia.core.scheduler import Debouncer
from marginalia.models import (
    DERIVED_CHARACTER_FIELDS,
    SNAPSHOT_FIELDS,
    Actor,
    Story,
    Version,
    VersionKind,
)
from marginalia.models.mixins import utcnow

event_logger = get_event_logger()

AUTOSAVE_KEY = "autosave"


def sort_versions(versions: Iterable[Version]) -> list[Version]:
    """Newest first."""
    return sorted(versions, key=lambda v: v.created_at, reverse=True)


def apply_retention(versions: Iterable[Version], autosave_limit: int) -> list[Version]:
    """Keep every manual version and the newest ``autosave_limit`` automatic ones."""
    versions = list(versions)
    manual = [v for v in versions if v.kind is VersionKind.MANUAL]
    automatic = sort_versions(v for v in versions if v.kind is VersionKind.AUTOMATIC)
    return sort_versions(manual + automatic[: max(autosave_limit, 0)])


class VersionScheduler:
    """Appends snapshots of ``story`` to its version log.

    ``before_snapshot`` is called before every capture so the owner can flush
    unsaved editor state (the live chapter buffer) into the story first.
    """

    def __init__(
        self,
        story: Story,
        debouncer: Debouncer,
        *,
        before_snapshot: Callable[[], None] | None = None,
        settings: VersionConfig | None = None,
        session_id: str | None = None,
    ) -> None:
        self.story = story
        self.debouncer = debouncer
        self.before_snapshot = before_snapshot
        self.settings = settings or config.versions
        self.session_id = session_id

    def versions(self) -> list[Version]:
        return sort_versions(self.story.versions)

    def get(self, version_id: str) -> Version:
        for version in self.story.versions:
            if version.id == version_id:
                return version
        raise KeyError(f"Unknown version {version_id!r}")

    def _next_timestamp(self) -> datetime:
        # Creation times strictly increase within one story.
        now = utcnow()
        latest = max((v.created_at for v in self.story.versions), default=None)
        if latest is not None and now <= latest:
            now = latest + timedelta(microseconds=1)
        return now

    def _capture(self, name: str, kind: VersionKind) -> Version:
        if self.before_snapshot is not None:
            self.before_snapshot()
        version = Version(
            name=name,
            kind=kind,
            created_at=self._next_timestamp(),
            snapshot=self.story.content_snapshot(),
        )
        before = len(self.story.versions) + 1
        self.story.versions = apply_retention(
            [*self.story.versions, version], self.settings.autosave_limit
        )
        pruned = before - len(self.story.versions)
        event_logger.info(
            f"Saved {kind.value} version '{name}'",
            event_type=EventType.VERSION_SAVED,
            session_id=self.session_id,
            component=__name__,
            metadata={"version_id": version.id, "total": len(self.story.versions)},
        )
        if pruned:
            event_logger.debug(
                f"Pruned {pruned} automatic version(s)",
                event_type=EventType.VERSION_PRUNED,
                session_id=self.session_id,
                component=__name__,
            )
        return version

    def save_manual(self, name: str) -> Version:
        """Create a user-named version immediately."""
        name = (name or "").strip()
        if not name:
            raise ValueError("A version needs a name")
        version = self._capture(name, VersionKind.MANUAL)
        self.story.log_action(f"Saved version '{name}'.", Actor.USER)
        return version

    def save_automatic(self) -> Version:
        name = f"{self.settings.autosave_prefix} - {utcnow():%Y-%m-%d %H:%M:%S}"
        version = self._capture(name, VersionKind.AUTOMATIC)
        self.story.log_action("Version saved automatically.", Actor.AGENT)
        return version

    def schedule_autosave(self) -> bool:
        """Restart the autosave countdown; no-op while autosave is disabled."""
        if not self.story.autosave_enabled:
            self.debouncer.cancel(AUTOSAVE_KEY)
            return False
        self.debouncer.schedule(AUTOSAVE_KEY, self.settings.autosave_delay, self.save_automatic)
        return True

    def set_autosave(self, enabled: bool) -> None:
        if self.story.autosave_enabled == enabled:
            return
        self.story.autosave_enabled = enabled
        if not enabled:
            self.debouncer.cancel(AUTOSAVE_KEY)
        state = "enabled" if enabled else "disabled"
        self.story.log_action(f"Autosave was {state}.", Actor.USER)

    def restore(self, version_id: str) -> Version:
        """Overwrite the story's content with a version's snapshot.

        Identity, history and settings are kept. Derived character assets are
        taken from the live character with the same id, or blanked if that
        character no longer exists.
        """
        version = self.get(version_id)
        restored = version.snapshot.model_copy(deep=True)
        live = {c.id: c for c in self.story.characters}
        characters = []
        for character in restored.characters:
            current = live.get(character.id)
            derived = {
                name: getattr(current, name) if current is not None else ""
                for name in DERIVED_CHARACTER_FIELDS
            }
            characters.append(character.model_copy(update=derived))
        restored.characters = characters

        for name in SNAPSHOT_FIELDS:
            setattr(self.story, name, getattr(restored, name))
        self.debouncer.cancel(AUTOSAVE_KEY)
        self.story.log_action(f"Restored the story to version '{version.name}'.", Actor.USER)
        event_logger.info(
            f"Restored version '{version.name}'",
            event_type=EventType.VERSION_RESTORED,
            session_id=self.session_id,
            component=__name__,
            metadata={"version_id": version.id},
        )
        return version


__all__ = ["AUTOSAVE_KEY", "VersionScheduler", "apply_retention", "sort_versions"]
