"""
Example fragment set for a music catalogue query.

Builds the slices a request like "tracks by <artist> released in
<years>" would produce: a datasource slice, an artist lookup, a
release filter and a track projection. Also builds a disjunction that
matches an artist by name or by sort name.
"""
from typing import Any, Iterable, List

from qslice.bindings import coll
from qslice.disjunction import or_qslice
from qslice.fragment import Fragment, qslice
from qslice.terms import kw, sym


def build_example_track_slices(
    artist_name: str = "John Lennon",
    years: Iterable[int] = (1970, 1971),
    db: Any = "db",
) -> List[Fragment]:
    a, r, m, t = sym("?a"), sym("?r"), sym("?m"), sym("?t")

    db_slice = qslice([], name="db", provide=["$"], let=[("$", db)])

    artist = qslice(
        [[a, kw(":artist/name"), sym("?artist-name")]],
        name="artist",
        provide=[a],
        must_let=["?artist-name"],
        let=[("?artist-name", artist_name)],
        selectivity=-10,
    )

    release = qslice(
        [
            [r, kw(":release/artists"), a],
            [r, kw(":release/year"), sym("?year")],
        ],
        name="release",
        provide=[r],
        require=[a],
        let=[(coll("?year"), list(years))],
    )

    track = qslice(
        [
            [r, kw(":release/media"), m],
            [m, kw(":medium/tracks"), t],
            [t, kw(":track/name"), sym("?title")],
        ],
        name="track",
        provide=[sym("?title")],
        require=[r],
        selectivity=10,
    )

    # input order differs from compiled order on purpose
    return [db_slice, track, release, artist]


def build_example_artist_or_slice(artist_name: str = "John Lennon") -> Fragment:
    a = sym("?a")
    by_name = qslice(
        [[a, kw(":artist/name"), sym("?n")]],
        name="by-name",
        provide=[a],
        let=[("?n", artist_name)],
    )
    by_sort_name = qslice(
        [[a, kw(":artist/sortName"), sym("?n")]],
        name="by-sort-name",
        provide=[a],
        let=[("?n", artist_name)],
    )
    return or_qslice([by_name, by_sort_name])
