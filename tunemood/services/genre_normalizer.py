"""
Genre Taxonomy Normalizer

Maps free-text genre strings (Last.fm tags, completion output, track and
artist names) onto a closed vocabulary of canonical genres.

Lookup happens in two stages: an exact match against a reverse index of
the taxonomy table, then an ordered keyword rule table matched by
substring. Everything here is pure; the index is built once at import.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from ..models.genre_models import OTHER_GENRE

# Canonical genre -> known synonyms and sub-genres
GENRE_TAXONOMY: Dict[str, Tuple[str, ...]] = {
    "rap": (
        "hip-hop", "hip hop", "hiphop", "trap", "conscious hip hop", "southern hip hop",
        "pop rap", "gangster rap", "gangsta rap", "underground rap", "underground hip hop",
        "alternative hip hop", "atlanta hip hop", "east coast hip hop", "west coast rap",
        "melodic rap", "modern rap", "urban contemporary", "drill", "uk drill",
        "grime", "mumble rap", "cloud rap", "rage rap", "pluggnb", "hyperpop rap",
        "boom bap", "jazz rap", "horrorcore", "crunk", "phonk", "rap rock",
    ),
    "r&b": (
        "rnb", "r and b", "rhythm and blues", "soul", "neo soul", "neo-soul",
        "contemporary r&b", "alternative r&b", "trap soul", "pop soul", "future soul",
        "indie r&b", "experimental r&b", "funk", "modern soul", "motown",
        "quiet storm", "new jack swing", "disco",
    ),
    "pop": (
        "dance pop", "dance-pop", "electropop", "indie pop", "synth-pop", "synthpop",
        "synth pop", "art pop", "chamber pop", "baroque pop", "dream pop", "k-pop",
        "kpop", "j-pop", "jpop", "teen pop", "bubblegum pop", "hyperpop", "power pop",
        "europop", "pop rock", "adult contemporary", "mainstream", "top 40",
    ),
    "rock": (
        "alternative rock", "alternative", "indie rock", "indie", "hard rock",
        "classic rock", "punk rock", "punk", "pop punk", "post-punk", "psychedelic rock",
        "progressive rock", "prog rock", "metal", "heavy metal", "death metal",
        "black metal", "metalcore", "nu metal", "grunge", "post-rock", "shoegaze",
        "emo", "post-hardcore", "hardcore", "garage rock", "britpop", "new wave",
        "stoner rock", "math rock", "noise rock", "industrial rock",
    ),
    "electronic": (
        "electronica", "electro", "edm", "house", "deep house", "tech house",
        "progressive house", "techno", "minimal techno", "dubstep", "drum and bass",
        "drum n bass", "dnb", "ambient", "trance", "downtempo", "idm", "chillout",
        "chillwave", "synthwave", "vaporwave", "trip hop", "trip-hop", "breakbeat",
        "uk garage", "future bass", "lo-fi", "lofi", "electronic dance", "dance",
        "industrial", "glitch", "jungle",
    ),
    "jazz": (
        "bebop", "swing", "fusion", "jazz fusion", "smooth jazz", "cool jazz",
        "big band", "avant-garde jazz", "contemporary jazz", "modal jazz", "free jazz",
        "hard bop", "acid jazz", "nu jazz", "vocal jazz", "blues", "delta blues",
    ),
    "classical": (
        "baroque", "romantic", "contemporary classical", "modern classical", "opera",
        "symphony", "orchestral", "orchestra", "chamber music", "minimalism",
        "neoclassical", "neo-classical", "piano", "classical piano", "soundtrack",
        "score", "choral",
    ),
    "latin": (
        "reggaeton", "salsa", "latin pop", "bachata", "latin jazz", "merengue",
        "latin rock", "tropical", "latin alternative", "latin hip hop", "latin trap",
        "cumbia", "dembow", "bossa nova", "samba", "musica mexicana", "corridos",
        "regional mexican", "urbano latino",
    ),
    "folk": (
        "acoustic", "singer-songwriter", "singer songwriter", "americana",
        "traditional", "indie folk", "folk rock", "contemporary folk", "freak folk",
        "chamber folk", "anti-folk", "celtic",
    ),
    "country": (
        "bluegrass", "country rock", "country pop", "alt-country", "alt country",
        "outlaw country", "honky tonk", "contemporary country", "red dirt", "nashville",
    ),
    OTHER_GENRE: (),
}

CANONICAL_GENRES: Tuple[str, ...] = tuple(GENRE_TAXONOMY)


@dataclass(frozen=True)
class KeywordRule:
    """A genre family recognized by any of its keywords (substring match)."""
    family: str
    keywords: Tuple[str, ...]


# Evaluated in order; the first matching family wins.
KEYWORD_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule("rap", ("rap", "hip", "trap", "mc", "drill", "grime")),
    KeywordRule("r&b", ("r&b", "rnb", "soul", "funk")),
    KeywordRule("rock", ("rock", "metal", "punk", "emo", "hardcore", "grunge", "shoegaze")),
    KeywordRule("electronic", (
        "electro", "edm", "house", "techno", "trance", "dubstep", "dnb",
        "drum and bass", "ambient", "idm", "garage",
    )),
    KeywordRule("pop", ("pop",)),
    KeywordRule("latin", ("latin", "reggaeton", "salsa", "bachata", "cumbia", "samba", "bossa")),
    KeywordRule("folk", ("folk", "acoustic", "americana", "singer-songwriter")),
    KeywordRule("country", ("country", "bluegrass")),
    KeywordRule("jazz", ("jazz", "swing", "bebop", "blues")),
    KeywordRule("classical", ("classical", "orchestra", "symphon", "baroque", "opera")),
)


def build_reverse_index(taxonomy: Dict[str, Iterable[str]]) -> Dict[str, str]:
    """
    Build the synonym -> canonical genre index.

    Canonical names map to themselves. A synonym listed under several
    genres keeps its first owner.
    """
    index: Dict[str, str] = {}
    for canonical, synonyms in taxonomy.items():
        index[canonical.lower()] = canonical
    for canonical, synonyms in taxonomy.items():
        for synonym in synonyms:
            index.setdefault(synonym.lower().strip(), canonical)
    return index


REVERSE_INDEX: Dict[str, str] = build_reverse_index(GENRE_TAXONOMY)


def match_keyword_rule(text: str, rules: Iterable[KeywordRule] = KEYWORD_RULES) -> Optional[str]:
    """Return the family of the first rule with a keyword contained in ``text``."""
    for rule in rules:
        if any(keyword in text for keyword in rule.keywords):
            return rule.family
    return None


def normalize_genre(raw_genre: str) -> str:
    """
    Map a free-text genre string to a canonical genre.

    Args:
        raw_genre: Any genre-ish text

    Returns:
        A member of CANONICAL_GENRES; ``other`` when nothing matches
    """
    cleaned = (raw_genre or "").lower().strip()
    if not cleaned:
        return OTHER_GENRE

    exact = REVERSE_INDEX.get(cleaned)
    if exact is not None:
        return exact

    return match_keyword_rule(cleaned) or OTHER_GENRE


def find_genre_keywords(text: str, rules: Iterable[KeywordRule] = KEYWORD_RULES) -> List[str]:
    """
    Every family whose keywords appear in ``text``, in rule order.

    Used on long free text such as artist biographies, where more than
    one genre may be mentioned.
    """
    lowered = (text or "").lower()
    if not lowered:
        return []
    return [
        rule.family for rule in rules
        if any(keyword in lowered for keyword in rule.keywords)
    ]


def related_genres(genre: str) -> List[str]:
    """Sub-genres listed in the taxonomy for the canonical form of ``genre``."""
    return list(GENRE_TAXONOMY.get(normalize_genre(genre), ()))
