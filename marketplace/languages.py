"""
Language catalogue offered to guides when they build their profile.
"""

from __future__ import annotations

from typing import Iterable, List

INDIAN_LANGUAGES = [
    # Northern India
    "Hindi",
    "Punjabi",
    "Urdu",
    "Kashmiri",
    "Dogri",
    "Pahari",
    "Ladakhi",
    # Southern India
    "Tamil",
    "Telugu",
    "Kannada",
    "Malayalam",
    "Tulu",
    # Eastern India
    "Bengali",
    "Assamese",
    "Manipuri",
    "Nagamese",
    "Bodo",
    "Khasi",
    "Garo",
    "Tripuri",
    "Chakma",
    "Mizo",
    "Arunachali",
    "Maithili",
    # Western India
    "Gujarati",
    "Marathi",
    "Konkani",
    "Sindhi",
    "Bhili",
    # Central India
    "Newari",
    "Sherpa",
    "English",
    "Santhali",
    "Chhattisgarhi",
    "Haryanvi",
    "Rajasthani",
    "Magahi",
    "Bhojpuri",
    "Angika",
    "Awadhi",
    "Bagheli",
    "Malvi",
    "Muria",
    "Konda-Dora",
    "Kui",
    "Gondi",
]

SORTED_LANGUAGES = sorted(set(INDIAN_LANGUAGES))


def collect_languages(guides: Iterable[dict]) -> List[str]:
    """Sorted unique languages spoken by the given guides."""
    found = set()
    for guide in guides:
        languages = guide.get("languages")
        if isinstance(languages, list):
            found.update(lang for lang in languages if lang)
    return sorted(found)
