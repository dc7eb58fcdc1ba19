from __future__ import annotations

import asyncio

import pytest
from conftest import CHAPTER_TEXT, FakeConsistency, FakeGeneration, FakeShowTell

from marginalia.editor.decorations import DecorationKind
from marginalia.editor.errors import GenerationFailure, SessionClosedError
from marginalia.editor.session import HIGHLIGHT_KEY, EditSession
from marginalia.models import (
    ConsistencyVerdict,
    EntityCategory,
    Suggestion,
    Version,
    VersionKind,
    WorldEntry,
)

GREY_EYES = ConsistencyVerdict(is_contradictory=True, explanation="Bren's eyes are grey.")


@pytest.fixture
def make_session(story, editor_settings, version_settings):
    def factory(consistency=None, show_tell=None, generation=None, settings=None) -> EditSession:
        return EditSession(
            story,
            "ch-1",
            consistency=consistency or FakeConsistency(),
            show_tell=show_tell or FakeShowTell(),
            generation=generation or FakeGeneration(),
            editor_settings=settings or editor_settings,
            version_settings=version_settings,
        )

    return factory


@pytest.fixture
def delayed_settings(editor_settings):
    return editor_settings.model_copy(update={"highlight_delay": 0.05, "verify_delay": 5.0})


def _kinds(session: EditSession, kind: DecorationKind) -> int:
    return sum(len(block.decorations_of(kind)) for block in session.document)


def test_opening_a_session_highlights_entities(make_session) -> None:
    session = make_session()

    rendered = session.render()

    assert "".join(run.text for run in rendered[0]) == session.document.blocks[0].text
    assert [(r.text, r.kind) for r in rendered[0] if r.kind] == [
        ("Old King Bren", DecorationKind.HIGHLIGHT),
        ("Ironhold", DecorationKind.HIGHLIGHT),
    ]
    assert session.word_count == len(CHAPTER_TEXT.split())
    session.close()


def test_edit_triggers_verification_of_the_caret_block(make_session) -> None:
    service = FakeConsistency({"Bren": GREY_EYES})

    async def scenario():
        async with make_session(consistency=service) as session:
            text = session.text + " Truly."
            session.set_text(text, caret=len(text))
            await asyncio.sleep(0.05)
            await session.debouncer.drain()
            return session.render()[2], session.inconsistency("c-bren")

    runs, explanation = asyncio.run(scenario())

    assert [call[1] for call in service.calls] == ["Bren"]
    assert service.calls[0][0] == "Bren smiled at her with his green eyes. Truly."
    assert (runs[0].text, runs[0].kind) == ("Bren", DecorationKind.INCONSISTENCY)
    assert explanation == "Bren's eyes are grey."


def test_typing_exits_show_tell_mode(make_session) -> None:
    show_tell = FakeShowTell([Suggestion(original_text="She was very sad", alternatives=["Her lip trembled."])])

    async def scenario():
        async with make_session(show_tell=show_tell) as session:
            placements = await session.enter_show_tell()
            before = _kinds(session, DecorationKind.TELLING_PHRASE)
            session.insert(0, "A")
            return len(placements), before, _kinds(session, DecorationKind.TELLING_PHRASE), session.overlay.active

    assert asyncio.run(scenario()) == (1, 1, 0, False)


def test_selecting_an_alternative_replaces_the_phrase(make_session) -> None:
    show_tell = FakeShowTell([Suggestion(original_text="She was very sad", alternatives=["Her lip trembled."])])

    async def scenario():
        async with make_session(show_tell=show_tell) as session:
            await session.enter_show_tell()
            session.select_alternative(0, 0)
            block_id = session.document.blocks[1].id
            pending = (
                session.debouncer.pending(("verify", block_id)),
                session.debouncer.pending("autosave"),
            )
            return session.text, session.overlay.active, _kinds(session, DecorationKind.TELLING_PHRASE), pending

    text, active, telling, pending = asyncio.run(scenario())

    assert text == CHAPTER_TEXT.replace("She was very sad", "Her lip trembled.")
    assert active is False
    assert telling == 0
    assert pending == (True, True)


def test_failed_analysis_surfaces_and_keeps_highlights(make_session) -> None:
    session = make_session(show_tell=FakeShowTell(error=RuntimeError("timeout")))

    with pytest.raises(GenerationFailure):
        asyncio.run(session.enter_show_tell())

    assert session.overlay.active is False
    assert _kinds(session, DecorationKind.HIGHLIGHT) == 4
    session.close()


def test_close_cancels_pending_work(make_session, story) -> None:
    service = FakeConsistency({"Bren": GREY_EYES})

    async def scenario():
        session = make_session(consistency=service)
        text = session.text + " Again."
        session.set_text(text, caret=len(text))
        pending = set(session.debouncer.pending_keys())
        session.close()
        await asyncio.sleep(0.05)
        return session, pending

    session, pending = asyncio.run(scenario())

    assert "autosave" in pending and len(pending) == 2
    assert service.calls == []
    assert story.versions == []
    with pytest.raises(SessionClosedError):
        session.set_text("anything")
    session.close()


def test_close_drops_in_flight_verifications(make_session) -> None:
    service = FakeConsistency({"Bren": GREY_EYES})

    async def scenario():
        service.gate = asyncio.Event()
        session = make_session(consistency=service)
        text = session.text + " Again."
        session.set_text(text, caret=len(text))
        await asyncio.sleep(0.05)
        started = len(service.calls)
        session.close()
        service.gate.set()
        await asyncio.sleep(0.01)
        return started, dict(session.verifier.record)

    assert asyncio.run(scenario()) == (1, {})


def test_continue_writing_appends_a_paragraph(make_session) -> None:
    generation = FakeGeneration("  The wind rose.  ")

    async def scenario():
        async with make_session(generation=generation) as session:
            added = await session.continue_writing()
            return added, session.text, len(session.document)

    added, text, blocks = asyncio.run(scenario())

    assert added == "The wind rose."
    assert text == CHAPTER_TEXT + "\n\nThe wind rose."
    assert blocks == 4
    assert generation.calls == [("continue_text", CHAPTER_TEXT)]


def test_generation_failure_leaves_the_buffer_alone(make_session) -> None:
    async def scenario():
        async with make_session(generation=FakeGeneration(error=RuntimeError("503"))) as session:
            with pytest.raises(GenerationFailure) as excinfo:
                await session.continue_writing()
            return excinfo.value, session.text

    failure, text = asyncio.run(scenario())

    assert failure.operation == "continue_writing"
    assert isinstance(failure.__cause__, RuntimeError)
    assert text == CHAPTER_TEXT


def test_modify_selection_replaces_the_selected_text(make_session) -> None:
    generation = FakeGeneration("Mara paced beside the gate.")

    async def scenario():
        async with make_session(generation=generation) as session:
            await session.modify_selection(48, 72, "Make it tense")
            return session.text

    text = asyncio.run(scenario())

    assert text == CHAPTER_TEXT.replace("Mara waited by the gate.", "Mara paced beside the gate.")
    assert generation.calls == [("modify", "Mara waited by the gate.", CHAPTER_TEXT, "Make it tense")]


def test_modify_selection_fails_if_the_selection_changed(make_session) -> None:
    class EditingGeneration(FakeGeneration):
        session: EditSession | None = None

        async def modify(self, text: str, context: str, instruction: str) -> str:
            self.session.insert(48, "Later, ")
            return "rewritten"

    generation = EditingGeneration()

    async def scenario():
        async with make_session(generation=generation) as session:
            generation.session = session
            with pytest.raises(GenerationFailure):
                await session.modify_selection(48, 72, "Make it tense")
            return session.text

    assert asyncio.run(scenario()).startswith(CHAPTER_TEXT[:48] + "Later, Mara waited")


def test_modify_selection_needs_a_selection(make_session) -> None:
    session = make_session()
    with pytest.raises(ValueError):
        asyncio.run(session.modify_selection(10, 10, "shorter"))
    session.close()


def test_format_rich_does_not_touch_the_buffer(make_session) -> None:
    session = make_session()
    html = asyncio.run(session.format_rich())
    assert html == f"<p>{CHAPTER_TEXT}</p>"
    assert session.text == CHAPTER_TEXT
    session.close()


def test_save_writes_the_buffer_into_the_chapter(make_session, story) -> None:
    async def scenario():
        async with make_session() as session:
            session.insert(0, "Prologue. ")
            unsaved = story.chapter("ch-1").content
            session.save()
            return unsaved, session.text

    unsaved, text = asyncio.run(scenario())

    assert unsaved == CHAPTER_TEXT
    assert story.chapter("ch-1").content == text
    assert story.action_log[-1].action == "Saved chapter 'Arrival'."


def test_versions_capture_and_restore_the_live_buffer(make_session, story) -> None:
    async def scenario():
        async with make_session(consistency=FakeConsistency({"Bren": GREY_EYES})) as session:
            session.insert(0, "Prologue. ")
            version = session.save_version("With prologue")
            saved_text = session.text
            text = session.text + " More."
            session.set_text(text, caret=len(text))
            await asyncio.sleep(0.05)
            await session.debouncer.drain()
            had_inconsistency = session.inconsistency("c-bren") is not None
            session.restore_version(version.id)
            return version, saved_text, had_inconsistency, session

    version, saved_text, had_inconsistency, session = asyncio.run(scenario())

    assert version.snapshot.chapters[0].content == saved_text
    assert had_inconsistency is True
    assert session.text == saved_text
    assert len(session.verifier.record) == 0
    assert _kinds(session, DecorationKind.INCONSISTENCY) == 0
    assert _kinds(session, DecorationKind.HIGHLIGHT) == 4


def test_refresh_entities_picks_up_new_world_entries(make_session, story) -> None:
    session = make_session()
    story.world.append(WorldEntry(id="w-gate", name="the gate", category=EntityCategory.PLACE))

    session.refresh_entities()

    refs = [d.ref_id for d in session.document.blocks[1].decorations]
    assert refs == ["c-mara", "w-gate"]
    session.close()


def test_restoring_a_version_without_the_chapter_recreates_it_on_save(make_session, story) -> None:
    earlier = Version(
        name="Before the first chapter",
        snapshot=story.content_snapshot().model_copy(update={"chapters": []}),
    )
    story.versions.append(earlier)

    async def scenario():
        async with make_session() as session:
            session.restore_version(earlier.id)
            emptied = session.text
            session.set_text("New opening.")
            after = session.save_version("After the restore")
            await asyncio.sleep(0.05)
            await session.debouncer.drain()
            session.save()
            return emptied, after

    emptied, after = asyncio.run(scenario())

    assert emptied == ""
    assert [(c.id, c.title, c.content) for c in after.snapshot.chapters] == [
        ("ch-1", "Arrival", "New opening.")
    ]
    assert story.chapter("ch-1").content == "New opening."
    assert any(v.kind is VersionKind.AUTOMATIC for v in story.versions)
    assert story.action_log[-1].action == "Saved chapter 'Arrival'."


def test_delayed_highlights_return_after_the_window(make_session, delayed_settings) -> None:
    async def scenario():
        async with make_session(settings=delayed_settings) as session:
            session.insert(0, "Hail. ")
            during = len(session.document.blocks[0].decorations)
            pending = session.debouncer.pending(HIGHLIGHT_KEY)
            await asyncio.sleep(0.2)
            return during, pending, [d.ref_id for d in session.document.blocks[0].decorations]

    during, pending, refs = asyncio.run(scenario())

    assert during == 0
    assert pending is True
    assert refs == ["c-king", "w-iron"]


def test_rapid_edits_collapse_into_one_highlight_pass(make_session, delayed_settings) -> None:
    async def scenario():
        async with make_session(settings=delayed_settings) as session:
            before = session.highlighter.passes
            for i in range(5):
                session.insert(0, f"{i} ")
                await asyncio.sleep(0)
            during = session.highlighter.passes
            await asyncio.sleep(0.2)
            return before, during, session.highlighter.passes

    before, during, after = asyncio.run(scenario())

    assert during == before
    assert after == before + 1


def test_entering_show_tell_cancels_the_pending_highlight(make_session, delayed_settings) -> None:
    async def scenario():
        async with make_session(settings=delayed_settings) as session:
            session.insert(0, "Hail. ")
            await session.enter_show_tell()
            pending = session.debouncer.pending(HIGHLIGHT_KEY)
            entered = session.highlighter.passes
            await asyncio.sleep(0.2)
            return pending, entered, session.highlighter.passes, session.overlay.active

    pending, entered, after, active = asyncio.run(scenario())

    assert pending is False
    assert after == entered
    assert active is True


def test_failed_analysis_restores_the_cancelled_highlight(make_session, delayed_settings) -> None:
    async def scenario():
        session = make_session(
            show_tell=FakeShowTell(error=RuntimeError("timeout")), settings=delayed_settings
        )
        async with session:
            session.insert(0, "Hail. ")
            with pytest.raises(GenerationFailure):
                await session.enter_show_tell()
            await asyncio.sleep(0.2)
            return _kinds(session, DecorationKind.HIGHLIGHT), [
                d.ref_id for d in session.document.blocks[0].decorations
            ]

    highlights, refs = asyncio.run(scenario())

    assert refs == ["c-king", "w-iron"]
    assert highlights == 4
