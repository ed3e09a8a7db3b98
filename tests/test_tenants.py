"""Library registry tests."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from learnwiki.db.tenants import TenantRegistry, validate_library_name
from learnwiki.errors import ProtectedLibraryError, ValidationError
from learnwiki.store.schemas import Bookmark, WikiPage


def make_page(page_id: str, title: str = "Entropy") -> WikiPage:
    return WikiPage(id=page_id, title=title, content=f"About {title}")


# =============================================================================
# Name Validation
# =============================================================================


@pytest.mark.parametrize("name", ["default", "physics", "my-library_2", "A"])
def test_valid_names_pass(name):
    assert validate_library_name(name) == name


@pytest.mark.parametrize("name", ["", "../etc", "a/b", "has space", "dot.ted", "x\n"])
def test_unsafe_names_rejected(name):
    with pytest.raises(ValidationError):
        validate_library_name(name)


@settings(max_examples=100, deadline=None)
@given(st.text(min_size=1, max_size=40))
def test_accepted_names_never_contain_path_characters(name):
    """Whatever passes validation is safe to embed in a file name."""
    try:
        validate_library_name(name)
    except ValidationError:
        return
    assert "/" not in name
    assert "." not in name
    assert not any(ch.isspace() for ch in name)


# =============================================================================
# Registry Behavior
# =============================================================================


def test_default_library_exists_after_construction(registry: TenantRegistry):
    assert registry.exists("default")
    assert registry.path_for("default").exists()
    assert registry.path_for("default").name == "wiki-default.db"


def test_get_creates_library_on_first_use(registry: TenantRegistry):
    assert not registry.exists("physics")

    store = registry.get("physics")

    assert store.name == "physics"
    assert registry.exists("physics")


def test_get_without_name_returns_default(registry: TenantRegistry):
    assert registry.get() is registry.get("default")
    assert registry.get("") is registry.get("default")


def test_get_returns_cached_handle(registry: TenantRegistry):
    assert registry.get("physics") is registry.get("physics")


def test_libraries_are_isolated(registry: TenantRegistry):
    """A write to one library is invisible to another."""
    physics = registry.get("physics")
    history = registry.get("history")

    physics.pages.save(make_page("entropy-1"))
    physics.bookmarks.add(Bookmark(page_id="entropy-1", title="Entropy"))

    assert history.pages.get("entropy-1") is None
    assert history.bookmarks.get_all() == []
    assert registry.get("default").pages.get_all() == []


def test_create_reports_existing(registry: TenantRegistry):
    assert registry.create("physics") is True
    assert registry.create("physics") is False


def test_list_names_is_sorted_and_includes_default(registry: TenantRegistry):
    registry.create("zoology")
    registry.create("art")

    assert registry.list_names() == ["art", "default", "zoology"]


def test_info_reports_file_metadata(registry: TenantRegistry):
    registry.create("physics")

    info = registry.info("physics")

    assert info is not None
    assert info.name == "physics"
    assert info.size > 0
    assert info.modified.tzinfo is not None


def test_info_missing_library_returns_none(registry: TenantRegistry):
    assert registry.info("nowhere") is None


def test_delete_removes_file(registry: TenantRegistry):
    registry.get("physics").pages.save(make_page("entropy-1"))

    assert registry.delete("physics") is True

    assert not registry.exists("physics")
    assert "physics" not in registry.list_names()


def test_delete_missing_library_returns_false(registry: TenantRegistry):
    assert registry.delete("nowhere") is False


def test_default_library_cannot_be_deleted(registry: TenantRegistry):
    with pytest.raises(ProtectedLibraryError):
        registry.delete("default")
    assert registry.exists("default")


def test_recreated_library_starts_empty(registry: TenantRegistry):
    registry.get("physics").pages.save(make_page("entropy-1"))
    registry.delete("physics")

    assert registry.get("physics").pages.get_all() == []


def test_idle_libraries_are_closed_and_reopened(tmp_path):
    registry = TenantRegistry(tmp_path / "libraries", max_open=2)
    try:
        registry.get("one").pages.save(make_page("a-1"))
        registry.get("two")
        registry.get("three")  # evicts "one", never "default"

        assert registry.get("default") is not None
        assert registry.get("one").pages.get("a-1") is not None
    finally:
        registry.close_all()


def test_data_survives_reopen(tmp_path):
    first = TenantRegistry(tmp_path / "libraries")
    first.get("physics").pages.save(make_page("entropy-1"))
    first.close_all()

    second = TenantRegistry(tmp_path / "libraries")
    try:
        assert second.get("physics").pages.get("entropy-1") is not None
    finally:
        second.close_all()
