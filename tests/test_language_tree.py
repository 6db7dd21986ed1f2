import pytest

from audit_engine.services import language_tree
from audit_engine.services.language_tree import LanguageTree


def test_root_lookup_for_known_members() -> None:
    assert language_tree.find_root_for_locale("MC") == "FR"
    assert language_tree.find_root_for_locale("ca-FR") == "fr-FR"
    assert language_tree.find_root_for_locale("FR") == "FR"
    assert language_tree.find_root_for_locale("xx") is None
    assert language_tree.find_root_for_locale("english") is None
    assert language_tree.find_root_for_locale("") is None


@pytest.mark.parametrize("locale", ["en-US", "en_us", "FR", "fr", "ca-FR", "de-AT", "zz-ZZ", "xx", "english"])
def test_similar_roots_never_contain_input(locale: str) -> None:
    roots = language_tree.find_similar_language_roots(locale)
    assert locale not in roots
    assert len(roots) == len(set(roots))


def test_similar_roots_order_case_then_english_then_siblings() -> None:
    roots = language_tree.find_similar_language_roots("fr-FR")

    assert roots[:7] == ["fr-fr", "FR-fr", "FR-FR", "fr_fr", "fr_FR", "FR_fr", "FR_FR"]
    assert roots.index("en-US") < roots.index("fr-CA")
    assert roots[-4:] == ["ca-FR", "fr-CA", "fr-BE", "fr-CH"]


def test_case_variations() -> None:
    assert language_tree.generate_case_variations("FR") == ["fr"]
    assert language_tree.generate_case_variations("fr") == []
    assert len(language_tree.generate_case_variations("en-US")) == 7
    assert language_tree.generate_case_variations("english") == []
    assert language_tree.generate_case_variations(None) == []


def test_unknown_locale_degrades_to_case_and_english() -> None:
    roots = language_tree.find_similar_language_roots("zz-ZZ")
    assert roots == [*language_tree.generate_case_variations("zz-ZZ"), *language_tree.find_english_fallbacks()]


def test_english_fallbacks_are_a_fresh_copy() -> None:
    fallbacks = language_tree.find_english_fallbacks()
    fallbacks.append("xx")
    assert "xx" not in language_tree.find_english_fallbacks()
    assert fallbacks[:2] == ["us", "US"]


def test_custom_tree_derives_inverse_maps() -> None:
    tree = LanguageTree(country_groups={"PT": ["PT", "BR"]}, locale_groups={"pt-PT": ["pt-PT", "pt-BR"]})

    assert tree.find_root_for_locale("BR") == "PT"
    assert tree.find_root_for_locale("pt-BR") == "pt-PT"
    assert tree.find_root_for_locale("MC") is None
    assert tree.find_siblings("pt-BR") == ["pt-PT"]


def test_missing_inverse_entry_degrades_gracefully() -> None:
    tree = LanguageTree(country_to_root={}, locale_to_root={})

    assert tree.find_root_for_locale("MC") is None
    assert tree.find_root_for_locale("FR") == "FR"
    assert "MC" in tree.find_similar_language_roots("FR")
    assert tree.find_similar_language_roots("MC") == ["mc", *tree.find_english_fallbacks()]


def test_module_tables_are_read_only() -> None:
    with pytest.raises(TypeError):
        language_tree.COUNTRY_CODE_GROUPS["XX"] = ("XX",)  # type: ignore[index]
