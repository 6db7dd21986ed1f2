from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import MappingProxyType


def _freeze(groups: Mapping[str, Sequence[str]]) -> Mapping[str, tuple[str, ...]]:
    return MappingProxyType({root: tuple(members) for root, members in groups.items()})


def _invert(groups: Mapping[str, Sequence[str]]) -> Mapping[str, str]:
    inverse: dict[str, str] = {}
    for root, members in groups.items():
        for member in members:
            inverse[member] = root
    return MappingProxyType(inverse)


COUNTRY_CODE_GROUPS = _freeze(
    {
        "FR": ["FR", "MC"],
        "DE": ["DE", "AT", "LI"],
        "US": ["US", "GB", "CA", "AU", "NZ", "IE"],
        "ES": ["ES", "MX", "AR", "CO", "CL", "PE"],
        "IT": ["IT", "SM", "VA"],
        "CN": ["CN", "TW", "HK", "SG"],
        "RU": ["RU", "BY", "KZ"],
    }
)

LOCALE_CODE_GROUPS = _freeze(
    {
        "fr-FR": ["fr-FR", "ca-FR", "fr-CA", "fr-BE", "fr-CH"],
        "de-DE": ["de-DE", "de-AT", "de-CH", "de-LI"],
        "en-US": ["en-US", "en-GB", "en-CA", "en-AU", "en-NZ"],
        "es-ES": ["es-ES", "es-MX", "es-AR", "es-CO", "es-CL"],
        "it-IT": ["it-IT", "it-CH", "it-SM"],
        "zh-CN": ["zh-CN", "zh-TW", "zh-HK", "zh-SG"],
        "ru-RU": ["ru-RU", "ru-BY", "ru-KZ"],
    }
)

COUNTRY_TO_ROOT = _invert(COUNTRY_CODE_GROUPS)
LOCALE_TO_ROOT = _invert(LOCALE_CODE_GROUPS)

ENGLISH_FALLBACKS: tuple[str, ...] = (
    "us",
    "US",
    "en-us",
    "en_us",
    "en-US",
    "en_US",
    "gb",
    "GB",
    "en-gb",
    "en_gb",
    "en-GB",
    "en_GB",
)


class LanguageTree:
    """Resolve locale and country codes to related codes worth trying as fallbacks.

    The default instance reads the module tables. Pass other group maps to
    probe alternative trees; the inverse lookups are derived from them.
    """

    def __init__(
        self,
        country_groups: Mapping[str, Sequence[str]] | None = None,
        locale_groups: Mapping[str, Sequence[str]] | None = None,
        *,
        country_to_root: Mapping[str, str] | None = None,
        locale_to_root: Mapping[str, str] | None = None,
    ) -> None:
        self.country_groups = _freeze(country_groups) if country_groups is not None else COUNTRY_CODE_GROUPS
        self.locale_groups = _freeze(locale_groups) if locale_groups is not None else LOCALE_CODE_GROUPS
        if country_to_root is not None:
            self.country_to_root = MappingProxyType(dict(country_to_root))
        elif country_groups is not None:
            self.country_to_root = _invert(self.country_groups)
        else:
            self.country_to_root = COUNTRY_TO_ROOT
        if locale_to_root is not None:
            self.locale_to_root = MappingProxyType(dict(locale_to_root))
        elif locale_groups is not None:
            self.locale_to_root = _invert(self.locale_groups)
        else:
            self.locale_to_root = LOCALE_TO_ROOT

    def find_similar_language_roots(self, locale: str | None) -> list[str]:
        if not locale:
            return []
        candidates = [
            *self.generate_case_variations(locale),
            *self.find_english_fallbacks(),
            *self.find_siblings(locale),
        ]
        result: list[str] = []
        seen = {locale}
        for code in candidates:
            if code in seen:
                continue
            seen.add(code)
            result.append(code)
        return result

    def find_siblings(self, locale: str | None) -> list[str]:
        root = self.find_root_for_locale(locale)
        if root is None:
            return []
        groups = self.country_groups if len(root) == 2 else self.locale_groups
        return [code for code in groups.get(root, ()) if code != locale]

    def find_root_for_locale(self, locale: str | None) -> str | None:
        if not locale:
            return None
        if len(locale) == 2:
            return self.country_to_root.get(locale) or (locale if locale in self.country_groups else None)
        if len(locale) == 5:
            return self.locale_to_root.get(locale) or (locale if locale in self.locale_groups else None)
        return None

    @staticmethod
    def generate_case_variations(locale: str | None) -> list[str]:
        if not locale:
            return []
        if len(locale) == 2:
            return [code for code in (locale.lower(),) if code != locale]
        if len(locale) != 5:
            return []

        language, country = locale[:2], locale[3:]
        variations: list[str] = []
        for separator in ("-", "_"):
            for lang in (language.lower(), language.upper()):
                for ctry in (country.lower(), country.upper()):
                    code = f"{lang}{separator}{ctry}"
                    if code != locale:
                        variations.append(code)
        return variations

    @staticmethod
    def find_english_fallbacks() -> list[str]:
        return list(ENGLISH_FALLBACKS)


default_tree = LanguageTree()


def find_similar_language_roots(locale: str | None) -> list[str]:
    return default_tree.find_similar_language_roots(locale)


def find_root_for_locale(locale: str | None) -> str | None:
    return default_tree.find_root_for_locale(locale)


def generate_case_variations(locale: str | None) -> list[str]:
    return default_tree.generate_case_variations(locale)


def find_english_fallbacks() -> list[str]:
    return default_tree.find_english_fallbacks()
