"""Built-in provider catalogue per content domain.

``DEFAULT_ORDER`` lists the providers attempted by default, most reliable
first. Providers present in ``REGISTERED`` but missing from the order are
known but disabled (their upstream is currently broken).
"""

from __future__ import annotations

from resolvarr.domain.entities import ContentDomain

REGISTERED: dict[ContentDomain, tuple[str, ...]] = {
    ContentDomain.ANIME: (
        "zoro",
        "gogoanime",
        "animepahe",
        "9anime",
        "animefox",
        "anify",
        "crunchyroll",
        "bilibili",
        "marin",
        "anix",
        "animeowl",
    ),
    ContentDomain.MOVIES: (
        "flixhq",
        "viewasian",
        "dramacool",
        "fmovies",
        "goku",
        "movieshd",
        "sflix",
        "multimovies",
    ),
    ContentDomain.MANGA: ("mangahere",),
    ContentDomain.META: ("anilist", "anilist-manga", "mal", "tmdb"),
    ContentDomain.LIGHT_NOVELS: ("readlightnovels",),
    ContentDomain.BOOKS: ("libgen",),
    ContentDomain.NEWS: ("ann",),
    ContentDomain.COMICS: (),
}

DEFAULT_ORDER: dict[ContentDomain, tuple[str, ...]] = {
    ContentDomain.ANIME: ("zoro", "gogoanime"),
    ContentDomain.MOVIES: REGISTERED[ContentDomain.MOVIES],
    ContentDomain.MANGA: REGISTERED[ContentDomain.MANGA],
    ContentDomain.META: REGISTERED[ContentDomain.META],
    ContentDomain.LIGHT_NOVELS: REGISTERED[ContentDomain.LIGHT_NOVELS],
    ContentDomain.BOOKS: REGISTERED[ContentDomain.BOOKS],
    ContentDomain.NEWS: REGISTERED[ContentDomain.NEWS],
    ContentDomain.COMICS: (),
}
