"""
Country name to ISO 3166-1 alpha-2 lookup for tooltip flags.

JHU CSSE uses its own country naming ("US", "Korea, South", "Taiwan*",
"Congo (Kinshasa)", ...). Names are resolved through pycountry first, then an
alias table, then pycountry's fuzzy search. Anything unresolved has no flag.
"""

import logging
from functools import lru_cache
from typing import Optional

import pycountry

logger = logging.getLogger(__name__)


DEFAULT_FLAG_URL_TEMPLATE = "https://flagcdn.com/64x48/{iso2}.png"

# JHU names that pycountry does not resolve (or resolves wrongly).
# None marks entries that are not countries at all.
COUNTRY_ALIASES = {
    "uk": "GB",
    "korea, south": "KR",
    "korea, north": "KP",
    "taiwan*": "TW",
    "taiwan": "TW",
    "burma": "MM",
    "congo (kinshasa)": "CD",
    "congo (brazzaville)": "CG",
    "cote d'ivoire": "CI",
    "west bank and gaza": "PS",
    "holy see": "VA",
    "kosovo": "XK",
    "laos": "LA",
    "micronesia": "FM",
    "cabo verde": "CV",
    "eswatini": "SZ",
    "timor-leste": "TL",
    "turkey": "TR",
    "diamond princess": None,
    "ms zaandam": None,
    "summer olympics 2020": None,
    "winter olympics 2022": None,
}


@lru_cache(maxsize=None)
def country_iso2(name: Optional[str]) -> Optional[str]:
    """
    Resolve a country name to its upper-case alpha-2 code.

    Args:
        name: Country name as published by JHU CSSE

    Returns:
        Two-letter code, or None when the name cannot be resolved
    """
    if not name:
        return None

    key = name.strip().lower()
    if key in COUNTRY_ALIASES:
        return COUNTRY_ALIASES[key]

    try:
        return pycountry.countries.lookup(name.strip()).alpha_2
    except LookupError:
        pass

    try:
        matches = pycountry.countries.search_fuzzy(name.strip())
    except LookupError:
        logger.debug(f"No ISO code for country {name!r}")
        return None

    # Direct name matches are ranked ahead of subdivision matches
    return matches[0].alpha_2 if matches else None


def flag_url(name: Optional[str], template: str = DEFAULT_FLAG_URL_TEMPLATE) -> Optional[str]:
    """Flag image URL for a country name, or None when it has no ISO code."""
    iso2 = country_iso2(name)
    if not iso2:
        return None
    return template.format(iso2=iso2.lower(), ISO2=iso2)
