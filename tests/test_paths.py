import pytest

from audit_engine.services import path_utils
from audit_engine.services.content_path import ContentPath, ContentStatus, parse_content_status
from audit_engine.services.levenshtein import find_similar_path, levenshtein_distance
from audit_engine.services.locale import Locale, LocaleType


def test_locale_from_code() -> None:
    five = Locale.from_code("en_us")
    assert five is not None
    assert (five.type, five.language, five.country) == (LocaleType.FIVE_LETTER_LOCALE, "en", "US")

    two = Locale.from_code("fr")
    assert two is not None
    assert (two.type, two.language, two.country) == (LocaleType.TWO_LETTER_COUNTRY, None, "FR")
    assert not two.is_five_letter()

    for value in (None, "", "   ", "english", "en-usa", "e1"):
        assert Locale.from_code(value) is None


def test_locale_from_path_and_replace() -> None:
    path = "/content/dam/acme/en-us/products/shoe"
    locale = Locale.from_path(path)

    assert locale is not None and locale.code == "en-us"
    assert locale.replace_in_path(path, "fr-FR") == "/content/dam/acme/fr-FR/products/shoe"
    assert locale.replace_in_path("/content/dam/acme/de/page", "fr") == "/content/dam/acme/de/page"
    assert locale.replace_in_path(path, "") == path
    assert Locale.from_path("/content/dam/acme/products") is None
    assert locale.to_json() == {"code": "en-us", "type": "5-letter-locale", "language": "en", "country": "US"}


def test_remove_locale_from_path() -> None:
    assert path_utils.remove_locale_from_path("/content/dam/acme/en-us/page") == "/content/dam/acme/page"
    assert path_utils.remove_locale_from_path("/content/dam/acme/fr/") == "/content/dam/acme"
    assert path_utils.remove_locale_from_path("/content/dam/acme/page/") == "/content/dam/acme/page/"
    assert path_utils.remove_locale_from_path("/content/site/en-us/page") == "/content/site/en-us/page"
    assert path_utils.remove_locale_from_path(None) is None


def test_parent_path_stops_at_dam_root() -> None:
    assert path_utils.get_parent_path("/content/dam/acme/page") == "/content/dam/acme"
    assert path_utils.get_parent_path("/content/dam/acme/") == "/content/dam"
    assert path_utils.get_parent_path("/content/dam/") is None
    assert path_utils.get_parent_path("/content/dam") is None
    assert path_utils.get_parent_path("/var/acme/page") is None


def test_double_slashes_keep_protocol() -> None:
    assert path_utils.has_double_slashes("/content/dam//acme")
    assert not path_utils.has_double_slashes("https://example.com/content/dam/acme")
    assert path_utils.has_double_slashes("https://example.com//content")
    assert path_utils.remove_double_slashes("https://example.com//content///dam") == "https://example.com/content/dam"
    assert path_utils.remove_double_slashes("/content//dam/") == "/content/dam/"
    assert path_utils.remove_double_slashes("") == ""


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("", True),
        (None, True),
        ("/var/acme", True),
        ("/content/dam", True),
        ("/content/dam/", True),
        ("/content/dam/acme", False),
    ],
)
def test_breaking_point(path, expected) -> None:
    assert path_utils.is_breaking_point(path) is expected


def test_levenshtein_distance() -> None:
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("", "abc") == 3
    assert levenshtein_distance("abc", "") == 3
    assert levenshtein_distance("same", "same") == 0
    assert levenshtein_distance("flaw", "lawn") == levenshtein_distance("lawn", "flaw")


def test_similar_path_threshold_and_ties() -> None:
    candidates = [
        {"path": "/content/dam/acme/en-us/products-old"},
        {"path": "/content/dam/acme/fr-fr/produkt"},
        {"path": "/content/dam/acme/de-de/product"},
    ]

    best = find_similar_path("/content/dam/acme/en-us/product", candidates, 3)
    assert best is candidates[2]

    tied = [{"path": "/content/dam/acme/pageA"}, {"path": "/content/dam/acme/pageB"}]
    assert find_similar_path("/content/dam/acme/pageC", tied, 3) is tied[0]

    far = [{"path": "/content/dam/acme/completely-different"}]
    assert find_similar_path("/content/dam/acme/page", far, 3) is None
    assert find_similar_path("/content/dam/acme/page", [], 3) is None


def test_similar_path_accepts_objects_and_boundary_distance() -> None:
    candidate = ContentPath("/content/dam/acme/abcd")
    assert find_similar_path("/content/dam/acme/wxyz", [candidate], 4) is candidate
    assert find_similar_path("/content/dam/acme/wxyz", [candidate], 3) is None


def test_content_path_value_object() -> None:
    published = ContentPath("/content/dam/acme/a", ContentStatus.PUBLISHED, Locale.from_code("en-us"))
    assert published.is_valid()
    assert published.is_published()
    assert published.to_json()["locale"]["code"] == "en-us"

    assert not ContentPath("   ").is_valid()
    assert not ContentPath(None).is_valid()
    assert not ContentPath("/a", "published").is_published()
    assert ContentPath("/a", ContentStatus.DRAFT, None).to_json() == {"path": "/a", "status": "DRAFT", "locale": None}


def test_parse_content_status() -> None:
    assert parse_content_status("published") is ContentStatus.PUBLISHED
    assert parse_content_status(" Draft ") is ContentStatus.DRAFT
    assert parse_content_status("weird") is ContentStatus.UNKNOWN
    assert parse_content_status(None) is ContentStatus.UNKNOWN
