from app.db.filters import contains_pattern, escape_like, slugify, unique_slug
from app.db.models import GlossaryTerm
from app.services.glossary_service import group_by_letter


def _term(term, slug):
    return GlossaryTerm(id=slug, slug=slug, term=term, definition=f"{term} definition", related_terms=[])


def test_group_by_letter_uppercases_and_keeps_order():
    terms = [_term("genga", "genga"), _term("Sakuga", "sakuga"), _term("Go-ga", "goga")]

    grouped = group_by_letter(terms)

    assert list(grouped) == ["G", "S"]
    assert [t.slug for t in grouped["G"]] == ["genga", "goga"]


def test_group_by_letter_skips_empty_terms():
    assert group_by_letter([_term("", "blank")]) == {}


def test_like_wildcards_are_escaped():
    assert escape_like("100%_done") == "100\\%\\_done"
    assert contains_pattern("50%") == "%50\\%%"


def test_slugify():
    assert slugify("Best Smears of 2016!") == "best-smears-of-2016"
    assert slugify("  ---  ") == ""
    assert len(slugify("x" * 80)) == 50


def test_unique_slug_has_suffix():
    first, second = unique_slug("My Collection"), unique_slug("My Collection")
    assert first.startswith("my-collection-")
    assert first != second
    assert unique_slug("!!!").startswith("untitled-")
