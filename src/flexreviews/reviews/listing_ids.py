"""
Listing id resolution.

Hostaway review records only carry the listing's display name, e.g.
"2B N1 A - 29 Shoreditch Heights". The canonical listing id is built from
the unit code at the start of that name.
"""

import re

_THREE_TOKEN_RE = re.compile(r"^(\w+)\s(\w+)\s(\w+)")


def resolve_listing_id(listing_name: str) -> str:
    """
    Canonical listing id for a listing name.

    "2B N1 A - 29 Shoreditch Heights" -> "2B-N1-A". Names without three
    leading word tokens fall back to the part before the first " - ",
    with spaces turned into hyphens.
    """
    if not isinstance(listing_name, str):
        listing_name = "" if listing_name is None else str(listing_name)

    match = _THREE_TOKEN_RE.match(listing_name)
    if match:
        return "-".join(match.groups())

    return re.sub(r"\s", "-", listing_name.split(" - ")[0])
