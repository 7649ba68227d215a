"""Unit tests for tag listing and category organization."""

import json

import pytest

from backend.src.services.categorizer import CategorizationError
from backend.src.services.tag_service import TagService, group_by_tag, split_sections

from backend.tests.unit.note_factory import make_note


@pytest.fixture
def tags(db, store, categorizer) -> TagService:
    return TagService(db, categorizer, store)


def test_group_by_tag_orders_by_usage_then_name() -> None:
    notes = [
        make_note("1", "Work", ["b", "a"]),
        make_note("2", "Work", ["b", "c"]),
    ]

    grouped = group_by_tag(notes)

    assert [(entry.tag, entry.count) for entry in grouped] == [("b", 2), ("a", 1), ("c", 1)]
    assert [note.id for note in grouped[0].notes] == ["1", "2"]


def test_split_sections() -> None:
    sections = split_sections(
        {"work: Meetings": ["standup"], "work: Projects": ["api"], "Loose": ["misc"]}
    )

    by_name = {section.section: section.categories for section in sections}
    assert by_name["work"] == {"Meetings": ["standup"], "Projects": ["api"]}
    assert by_name["other"] == {"Loose": ["misc"]}


def test_categories_default_to_empty(tags) -> None:
    result = tags.get_categories("alice")

    assert result.categories == {}
    assert result.updated is None


@pytest.mark.asyncio
async def test_categorize_uses_all_tags_and_caches(tags, store, llm) -> None:
    store.insert("alice", "standup notes", "Work", ["meeting", "team"])
    llm.complete.return_value = json.dumps({"Work": ["meeting", "team"]})

    result = await tags.categorize("alice")

    assert result.categories == {"Work": ["meeting", "team"]}
    assert tags.get_categories("alice").categories == {"Work": ["meeting", "team"]}
    assert "meeting" in llm.complete.await_args.args[1]


@pytest.mark.asyncio
async def test_categorize_without_tags_skips_model(tags, llm) -> None:
    result = await tags.categorize("alice")

    assert result.categories == {}
    llm.complete.assert_not_awaited()


@pytest.mark.asyncio
async def test_failed_categorization_keeps_cache(tags, llm) -> None:
    tags.save_categories("alice", {"Work": ["meeting"]})
    llm.complete.return_value = "sorry, no JSON"

    with pytest.raises(CategorizationError):
        await tags.categorize("alice", ["meeting"])

    assert tags.get_categories("alice").categories == {"Work": ["meeting"]}


@pytest.mark.asyncio
async def test_organize_strips_previous_sections(tags, llm) -> None:
    tags.save_categories("alice", {"private: Meetings": ["standup"]})
    llm.complete.return_value = json.dumps({"work": ["Meetings"]})

    result = await tags.organize("alice")

    assert result.categories == {"work: Meetings": ["standup"]}
    assert '["Meetings"]' in llm.complete.await_args.args[1]
    assert [section.section for section in tags.life_sections("alice")] == ["work"]
