from __future__ import annotations

from typing import NamedTuple


class RegionDef(NamedTuple):
    name: str
    gl: str
    geo: str


class LengthPreset(NamedTuple):
    tldr_sentences: str
    bullets_min: int
    bullets_max: int


class DominantOutletRule(NamedTuple):
    outlet: str
    preferred_hosts: tuple[str, ...]
    max_reserved: int = 2


HOME_REGION = "lithuania"
GOOGLE_NEWS_HOST = "news.google.com"
GEO_WORLD = "World"

# ==========================================
# Regions / languages
# ==========================================
REGION_MAP: dict[str, RegionDef] = {
    "global": RegionDef("Global", "US", "World"),
    "lithuania": RegionDef("Lithuania", "LT", "Lithuania"),
    "united-states": RegionDef("United States", "US", "United States"),
    "united-kingdom": RegionDef("United Kingdom", "GB", "United Kingdom"),
    "germany": RegionDef("Germany", "DE", "Germany"),
    "france": RegionDef("France", "FR", "France"),
    "india": RegionDef("India", "IN", "India"),
    "japan": RegionDef("Japan", "JP", "Japan"),
    "brazil": RegionDef("Brazil", "BR", "Brazil"),
    "australia": RegionDef("Australia", "AU", "Australia"),
}

# Languages queried per region when building language variants.
FEED_LANG_MAP: dict[str, tuple[str, ...]] = {
    "global": ("en",),
    "lithuania": ("lt",),
    "united-states": ("en",),
    "united-kingdom": ("en",),
    "germany": ("de",),
    "france": ("fr",),
    "india": ("en",),
    "japan": ("ja",),
    "brazil": ("pt",),
    "australia": ("en",),
}

# Google News serves better results when gl follows the content language.
LANGUAGE_GL_OVERRIDES: dict[str, str] = {
    "de": "DE",
    "fr": "FR",
    "es": "ES",
    "it": "IT",
    "pt": "BR",
    "ja": "JP",
    "ko": "KR",
    "zh": "CN",
    "ru": "RU",
    "pl": "PL",
}

GLOBAL_GLS: tuple[str, ...] = (
    "US", "GB", "CA", "AU", "DE", "FR", "IT", "ES", "JP", "IN", "BR", "MX", "RU", "CN", "KR", "PL",
    "NL", "SE", "NO", "FI", "DK", "IE", "NZ", "ZA", "SG", "HK", "TW", "TH", "VN", "PH", "ID", "MY",
    "AE", "SA", "EG", "IL", "TR", "UA", "CZ", "HU", "RO", "BG", "HR", "SI", "SK", "EE", "LV", "LT",
)

# ==========================================
# Categories
# ==========================================
CATEGORY_QUERIES: dict[str, str] = {
    "top": '"top news" OR "breaking news" OR headlines',
    "world": "world OR global",
    "business": "business OR economy OR markets",
    "technology": "technology OR tech OR AI",
    "science": "science OR research",
    "sports": "sports OR football OR soccer OR basketball",
    "entertainment": (
        '"entertainment news" OR "celebrity" OR "movie" OR "film" OR "music" OR "TV show" OR "series" '
        'OR "concert" OR "album" OR "cinema" OR "actor" OR "actress"'
    ),
    "culture": (
        'culture OR arts OR "visual art" OR literature OR books OR exhibition OR gallery OR theater '
        "OR theatre OR opera OR ballet OR museum OR heritage OR columnist OR critic OR review OR cultural"
    ),
    "health": "health OR medicine OR wellness",
    "politics": (
        "politics OR government OR election OR elections OR vote OR parliament OR congress OR senate "
        "OR coalition OR cabinet OR policy OR law OR referendum OR campaign"
    ),
    "climate": "climate OR environment OR emissions OR sustainability OR warming",
    "crypto": "crypto OR cryptocurrency OR bitcoin OR ethereum OR blockchain",
    "energy": "energy OR oil OR gas OR renewables OR solar OR wind OR nuclear",
    "education": "education OR school OR university OR students OR teachers",
    "travel": "travel OR tourism OR airline OR airport OR hotel",
    "gaming": "gaming OR video game OR esports OR playstation OR xbox OR nintendo",
    "space": "space OR NASA OR ESA OR SpaceX OR rocket OR satellite",
    "security": "security OR defense OR defence OR military OR conflict OR war",
}

TOPIC_MAP: dict[str, str] = {
    "world": "WORLD",
    "business": "BUSINESS",
    "technology": "TECHNOLOGY",
    "science": "SCIENCE",
    "sports": "SPORTS",
    "entertainment": "ENTERTAINMENT",
    "culture": "ENTERTAINMENT",
    "health": "HEALTH",
}

# ==========================================
# Curated publisher feeds
# ==========================================
FALLBACK_FEEDS: dict[str, tuple[str, ...]] = {
    "top": (
        "https://feeds.bbci.co.uk/news/world/rss.xml",
        "https://rss.nytimes.com/services/xml/rss/nyt/World.xml",
        "https://www.theguardian.com/world/rss",
        "https://www.reuters.com/world/rss.xml",
    ),
    "world": (
        "https://feeds.bbci.co.uk/news/world/rss.xml",
        "https://rss.nytimes.com/services/xml/rss/nyt/World.xml",
        "https://www.theguardian.com/world/rss",
        "https://www.reuters.com/world/rss.xml",
        "https://feeds.npr.org/1004/rss.xml",
        "https://www.aljazeera.com/xml/rss/all.xml",
        "https://www.dw.com/en/top-stories/rss.xml",
        "https://www.spiegel.de/international/rss.xml",
        "https://www.zeit.de/index.rss",
        "https://www.tagesschau.de/xml/rss2/",
        "https://rss.cnn.com/rss/edition_world.rss",
        "https://feeds.foxnews.com/foxnews/world",
    ),
    "technology": (
        "https://feeds.bbci.co.uk/news/technology/rss.xml",
        "https://rss.nytimes.com/services/xml/rss/nyt/Technology.xml",
        "https://www.theguardian.com/technology/rss",
    ),
    "business": (
        "https://feeds.bbci.co.uk/news/business/rss.xml",
        "https://rss.nytimes.com/services/xml/rss/nyt/Business.xml",
        "https://www.theguardian.com/business/rss",
    ),
    "science": (
        "https://feeds.bbci.co.uk/news/science_and_environment/rss.xml",
        "https://www.theguardian.com/science/rss",
    ),
    "sports": (
        "https://feeds.bbci.co.uk/sport/rss.xml?edition=uk",
        "https://www.theguardian.com/uk/sport/rss",
    ),
    "culture": (
        "https://www.theguardian.com/culture/rss",
        "https://rss.nytimes.com/services/xml/rss/nyt/Arts.xml",
        "https://feeds.bbci.co.uk/news/entertainment_and_arts/rss.xml",
    ),
    "lithuania": (
        "https://www.lrt.lt/rss",
        "https://www.delfi.lt/rss.xml",
        "https://www.15min.lt/rss",
        "https://www.lrytas.lt/rss",
    ),
    "india": (
        "https://timesofindia.indiatimes.com/rssfeedstopstories.cms",
        "https://indianexpress.com/section/business/feed/",
        "https://www.livemint.com/rss/news",
        "https://www.ndtv.com/rss",
        "https://www.thehindu.com/rss/",
    ),
    "united-states": (
        "https://feeds.bbci.co.uk/news/world/us_and_canada/rss.xml",
        "https://rss.nytimes.com/services/xml/rss/nyt/US.xml",
        "https://www.theguardian.com/us-news/rss",
        "https://rss.cnn.com/rss/edition_us.rss",
        "https://feeds.foxnews.com/foxnews/national",
    ),
    "united-kingdom": (
        "https://feeds.bbci.co.uk/news/uk/rss.xml",
        "https://rss.nytimes.com/services/xml/rss/nyt/World.xml",
        "https://www.theguardian.com/uk-news/rss",
        "https://www.telegraph.co.uk/rss.xml",
        "https://www.independent.co.uk/rss",
    ),
    "germany": (
        "https://www.spiegel.de/international/rss.xml",
        "https://www.zeit.de/index.rss",
        "https://www.faz.net/rss/aktuell/",
        "https://www.dw.com/en/top-stories/rss.xml",
        "https://www.tagesschau.de/xml/rss2/",
    ),
    "france": (
        "https://www.lemonde.fr/rss/en_continu.xml",
        "https://www.lefigaro.fr/rss/figaro_actualites.xml",
        "https://www.liberation.fr/rss/",
        "https://www.france24.com/en/rss",
    ),
    "japan": (
        "https://www.nhk.or.jp/rss/news/cat0.xml",
        "https://www.asahi.com/rss/asahi/newsheadlines.rdf",
        "https://www.japantimes.co.jp/feed/",
        "https://www.yomiuri.co.jp/rss/portal.xml",
    ),
    "brazil": (
        "https://g1.globo.com/rss/g1/",
        "https://www.folha.uol.com.br/rss/",
        "https://www.estadao.com.br/rss/",
        "https://www.bbc.com/portuguese/rss.xml",
    ),
    "australia": (
        "https://www.abc.net.au/news/feed/51120/rss.xml",
        "https://www.smh.com.au/rss/feed.xml",
        "https://www.theage.com.au/rss/feed.xml",
        "https://www.news.com.au/rss",
    ),
}

# Priority publisher forced to the front of the fetch order for a region.
PRIORITY_PUBLISHERS: dict[str, str] = {
    "lithuania": "delfi",
}
PRIORITY_PUBLISHER_MAX = 2

DOMINANT_OUTLET_RULES: dict[str, DominantOutletRule] = {
    "lithuania": DominantOutletRule("delfi", ("lrt.lt", "lrytas.lt", "15min.lt")),
}

# Hosts that answer slowly or rate-limit; one attempt only, fetched last.
SLOW_SOURCE_HOSTS: tuple[str, ...] = (GOOGLE_NEWS_HOST,)

# ==========================================
# Text processing
# ==========================================
STOPWORDS: frozenset[str] = frozenset(
    {
        # en
        "the", "a", "an", "and", "or", "but", "of", "in", "on", "for", "to", "from", "with", "by",
        "about", "over", "after", "before", "as", "at", "is", "are", "was", "were", "be", "been",
        "being", "new", "latest", "update", "breaking", "report", "says", "said", "may", "might",
        "could", "will", "would", "vs", "into", "out", "up", "down", "amid", "under", "more", "than",
        "it", "its",
        # lt
        "ir", "bei", "ar", "bet", "kad", "jog", "apie", "kuris", "kuri", "kurie", "kurias", "tai",
        "tas", "ta", "tie", "tos", "iki", "nuo", "po", "per", "dėl", "už", "yra", "buvo", "bus",
        "naujas", "nauja", "nauji", "naujos", "praneša", "sako", "gal", "gali",
    }
)

SENTENCE_TERMINATORS: tuple[str, ...] = (".", "!", "?", "。", "！", "？", "…")

# ==========================================
# Prompt presets
# ==========================================
STYLE_DIRECTIVES: dict[str, str] = {
    "neutral": "Neutral, factual tone. Keep it concise and balanced.",
    "concise-bullets": "Concise bullets. One-liners where possible.",
    "casual": "Conversational and friendly tone. Avoid jargon.",
    "headlines-only": "Headlines only (one line each). No extra commentary.",
    "analytical": "Analytical. Mention implications, context, risks, and what's next.",
    "executive-brief": (
        "Executive brief. 5-8 bullets: What happened, why it matters, key details, context, what's next."
    ),
    "snarky": "Witty, slightly sarcastic tone without being rude. Keep it sharp and readable.",
    "optimistic": (
        "Upbeat, constructive tone. Emphasize positive outcomes and opportunities while staying factual."
    ),
    "skeptical": (
        "Question underlying assumptions. Highlight caveats, limitations, and missing information "
        "without being dismissive."
    ),
    "storyteller": (
        "Narrative tone. Smooth transitions, light color, and a sense of progression while remaining "
        "tight and factual."
    ),
    "dry-humor": "Deadpan, subtle humor. No slapstick, keep it understated and professional.",
    "urgent-brief": "Time-critical tone. Short sentences, immediate takeaways and action-oriented phrasing.",
    "market-analyst": (
        "Professional market commentary. Include drivers, numbers where available, and likely "
        "implications for markets or businesses."
    ),
    "doomer": (
        "Sober, pessimistic vibe. Emphasize risks, downsides, and long-term headwinds, but stay "
        "respectful and factual; no nihilism or personal attacks."
    ),
    "4chan-user": "a 4chan user with meme phrasing and irony. Dont get overly edgy.",
    "uzkalnis": (
        "Opinionated Lithuanian columnist vibe: assertive, witty, and metaphor-rich while remaining "
        "respectful. Critique ideas, not people."
    ),
    "piktas-delfio-komentatorius": (
        "Ironic 'angry commenter' tone: blunt and punchy, highlighting frustrations and contradictions "
        "without insults, hate, or profanity."
    ),
}

# Lower temperature for styles that should stay terse.
TERSE_STYLES: frozenset[str] = frozenset({"headlines-only", "urgent-brief"})

LENGTH_PRESETS: dict[str, LengthPreset] = {
    "short": LengthPreset("1 sentence", 4, 6),
    "medium": LengthPreset("2-3 sentences", 6, 9),
    "long": LengthPreset("4-5 sentences", 8, 12),
    "very-long": LengthPreset("6-8 sentences", 10, 16),
}
DEFAULT_LENGTH_PRESET = LengthPreset("1-2 sentences", 6, 9)
SUGGESTED_BULLETS = 6
