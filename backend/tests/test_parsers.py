"""
test_parsers.py — extraction strategies in isolation, the ordered
chart parser, discovery page parsing and the tab-separated paste fallback
"""
import unittest

from bs4 import BeautifulSoup

from chartradar.core.exceptions import LoginPageError, NoValidRowsError
from chartradar.extraction.classify import (
    classify_chart_family,
    genre_from_beatport_url,
    toptracker_chart_parts,
)
from chartradar.extraction.parsers import (
    ChartPageParser,
    accept_rows,
    beatport_chart_parser,
    parse_chart_links,
    parse_chart_tsv,
    parse_genres,
    toptracker_chart_parser,
)
from chartradar.extraction.strategies import (
    LinkPairStrategy,
    ParsedRow,
    PositionalCellStrategy,
    StructuredSelectorStrategy,
    artist_identity_from_href,
    parse_rank,
    primary_artist,
    split_movement,
)
from tests.helpers import (
    AFRO_GENRE_PAGE,
    BEATPORT,
    BEATPORT_CHART,
    GENRE_INDEX,
    LOGIN_PAGE,
    PASTE_TEXT,
    TECHNO_GENRE_PAGE,
    TOPTRACKER_CHART,
)


def soup(html):
    return BeautifulSoup(html, "lxml")


class TestHelpers(unittest.TestCase):

    def test_parse_rank(self):
        self.assertEqual(parse_rank("12"), 12)
        self.assertEqual(parse_rank("#7"), 7)
        self.assertEqual(parse_rank("3 ↑2"), 3)
        self.assertIsNone(parse_rank("#"))
        self.assertIsNone(parse_rank(None))

    def test_split_movement(self):
        self.assertEqual(split_movement("Jua ↑2"), ("Jua", "↑2"))
        self.assertEqual(split_movement("Ritual"), ("Ritual", None))

    def test_primary_artist(self):
        self.assertEqual(primary_artist("Ama Kofi, Zola"), "Ama Kofi")
        self.assertEqual(primary_artist(""), "")

    def test_artist_identity_from_href(self):
        self.assertEqual(artist_identity_from_href("/artist/kaleo-sun/1001"), ("1001", "kaleo-sun"))
        self.assertEqual(artist_identity_from_href("/artist/ama-kofi"), (None, "ama-kofi"))
        self.assertEqual(artist_identity_from_href("/label/x/1"), (None, None))


class TestStructuredSelectorStrategy(unittest.TestCase):

    def test_reads_rank_from_nested_attribute(self):
        html = """
        <div class="row"><span data-position="5"></span>
          <a class="t">Song</a><a class="a" href="/artist/some-dj/42">Some DJ</a></div>
        """
        strategy = StructuredSelectorStrategy(
            row_selectors=[".row"], title_selectors=[".t"], artist_selectors=[".a"],
        )
        rows = strategy.extract(soup(html))
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].position, 5)
        self.assertEqual(rows[0].artist_external_id, "42")
        self.assertEqual(rows[0].artist_slug, "some-dj")

    def test_falls_back_to_first_cell_rank(self):
        html = "<table><tbody><tr><td>#3</td><td class='t'>Song</td><td class='a'>DJ</td></tr></tbody></table>"
        strategy = StructuredSelectorStrategy(
            row_selectors=["tbody tr"], title_selectors=[".t"], artist_selectors=[".a"], rank_attribute=None,
        )
        rows = strategy.extract(soup(html))
        self.assertEqual(rows[0].position, 3)

    def test_rows_without_title_and_artist_are_skipped(self):
        html = "<ul><li class='r' data-position='1'><span>ad</span></li></ul>"
        strategy = StructuredSelectorStrategy(row_selectors=[".r"], title_selectors=[".t"], artist_selectors=[".a"])
        self.assertEqual(strategy.extract(soup(html)), [])


class TestPositionalCellStrategy(unittest.TestCase):

    def test_reads_default_columns(self):
        html = """
        <table>
          <tr><td>1</td><td>Ritual ↓1</td><td><a href="/artist/kaleo-sun/7">Kaleo Sun</a></td><td>Deep Roots</td><td>2026-01-03</td></tr>
          <tr><td>only</td><td>two</td></tr>
        </table>
        """
        rows = PositionalCellStrategy().extract(soup(html))
        self.assertEqual(len(rows), 1)
        row = rows[0]
        self.assertEqual(row.position, 1)
        self.assertEqual(row.track_title, "Ritual")
        self.assertEqual(row.movement, "↓1")
        self.assertEqual(row.artist_name, "Kaleo Sun")
        self.assertEqual(row.artist_external_id, "7")
        self.assertEqual(row.label_name, "Deep Roots")
        self.assertEqual(row.released, "2026-01-03")

    def test_min_cells(self):
        html = "<table><tr><td>1</td><td>A</td><td>B</td></tr></table>"
        self.assertEqual(PositionalCellStrategy(min_cells=5).extract(soup(html)), [])


class TestLinkPairStrategy(unittest.TestCase):

    def test_pairs_track_and_artist_links_by_container(self):
        html = """
        <div><a href="/track/one/1">One</a><a href="/artist/dj-a/10">DJ A</a><a href="/label/l/1">L</a></div>
        <div><a href="/track/two/2">Two</a><a href="/artist/dj-b/11">DJ B</a></div>
        """
        rows = LinkPairStrategy().extract(soup(html))
        self.assertEqual([r.position for r in rows], [1, 2])
        self.assertEqual([r.artist_name for r in rows], ["DJ A", "DJ B"])
        self.assertEqual(rows[0].label_name, "L")
        self.assertIsNone(rows[1].label_name)


class TestAcceptRows(unittest.TestCase):

    def test_validity_rules(self):
        candidates = [
            ParsedRow(position=1, track_title="A", artist_name="DJ A"),
            ParsedRow(position=1, track_title="Dup", artist_name="DJ Dup"),
            ParsedRow(position=0, track_title="Zero", artist_name="DJ Z"),
            ParsedRow(position=201, track_title="Far", artist_name="DJ F"),
            ParsedRow(position=None, track_title="None", artist_name="DJ N"),
            ParsedRow(position=2),
            ParsedRow(position=3, track_title="B", artist_name="Sign in"),
            ParsedRow(position=4, artist_name="DJ Only"),
        ]
        accepted, filtered = accept_rows(candidates)
        self.assertEqual([r.position for r in accepted], [1, 4])
        self.assertEqual(accepted[0].track_title, "A")
        self.assertEqual(filtered, 1)


class TestChartPageParser(unittest.TestCase):

    def test_beatport_chart_filters_navigation_row(self):
        result = beatport_chart_parser().parse(BEATPORT_CHART)
        self.assertEqual(result.strategy, "structured")
        self.assertEqual([r.position for r in result.rows], [1, 2, 3])
        self.assertEqual(result.filtered, 1)
        self.assertEqual(result.rows[0].artist_external_id, "1001")
        self.assertEqual(result.rows[1].label_name, "Afrika Beats")

    def test_toptracker_chart(self):
        result = toptracker_chart_parser().parse(TOPTRACKER_CHART)
        self.assertEqual(len(result.rows), 3)
        first = result.rows[0]
        self.assertEqual(first.track_title, "Jua")
        self.assertEqual(first.movement, "↑2")
        self.assertEqual(first.artist_name, "Ama Kofi")
        self.assertEqual(first.artists_full, "Ama Kofi, Zola")
        self.assertEqual(first.released, "2026-01-12")

    def test_login_page_yields_no_rows(self):
        for parser in (beatport_chart_parser(), toptracker_chart_parser()):
            with self.subTest(source=parser.source):
                with self.assertRaises(LoginPageError):
                    parser.parse(LOGIN_PAGE)

    def test_falls_through_to_next_strategy(self):
        html = "<table><tr><td>1</td><td>Song</td><td>DJ</td></tr></table>"
        parser = ChartPageParser(
            strategies=[
                StructuredSelectorStrategy(row_selectors=[".nope"], title_selectors=[".t"], artist_selectors=[".a"]),
                PositionalCellStrategy(),
            ],
            landing_check=lambda html: False,
        )
        result = parser.parse(html)
        self.assertEqual(result.strategy, "positional")
        self.assertEqual(result.attempts, ["structured", "positional"])

    def test_no_strategy_succeeds(self):
        with self.assertRaises(NoValidRowsError):
            beatport_chart_parser().parse("<html><body><p>Nothing here</p></body></html>")


class TestDiscoveryParsing(unittest.TestCase):

    def test_parse_genres(self):
        genres = parse_genres(GENRE_INDEX, f"{BEATPORT}/charts")
        self.assertEqual([g.slug for g in genres], ["techno-peak-time-driving", "afro-house"])
        self.assertEqual(genres[1].url, f"{BEATPORT}/genre/afro-house/89")
        self.assertEqual(genres[1].name, "Afro House")

    def test_parse_chart_links_skips_self_and_other_hosts(self):
        base = f"{BEATPORT}/genre/techno-peak-time-driving/6"
        links = parse_chart_links(TECHNO_GENRE_PAGE, base)
        self.assertEqual([l.url for l in links], [f"{base}/top-100"])
        afro = parse_chart_links(AFRO_GENRE_PAGE, f"{BEATPORT}/genre/afro-house/89")
        self.assertEqual(len(afro), 1)
        self.assertEqual(afro[0].title, "Afro House Hype 100")


class TestClassify(unittest.TestCase):

    def test_chart_family(self):
        self.assertEqual(classify_chart_family("/genre/x/1/top-100"), "top_tracks")
        self.assertEqual(classify_chart_family("/genre/x/1/hype-100"), "hype_tracks")
        self.assertEqual(classify_chart_family("/genre/x/1/releases", "Top Releases"), "top_releases")
        self.assertEqual(classify_chart_family("/genre/x/1/releases", "Hype Releases"), "hype_releases")
        self.assertEqual(classify_chart_family("/genre/x/1"), "unknown")

    def test_url_parts(self):
        self.assertEqual(genre_from_beatport_url(f"{BEATPORT}/genre/techno/6/top-100"), "techno")
        genre, day = toptracker_chart_parts("https://www.bptoptracker.com/top/track/afro-house/2026-02-05")
        self.assertEqual(genre, "afro-house")
        self.assertEqual(day.isoformat(), "2026-02-05")

    def test_impossible_date_in_url(self):
        genre, day = toptracker_chart_parts("https://www.bptoptracker.com/top/track/house/2026-02-30")
        self.assertEqual(genre, "house")
        self.assertIsNone(day)


class TestPasteParsing(unittest.TestCase):

    def test_tab_separated_rows(self):
        result = parse_chart_tsv(PASTE_TEXT)
        self.assertEqual(result.strategy, "tsv")
        self.assertEqual([r.position for r in result.rows], [1, 2])
        self.assertEqual(result.rows[0].track_title, "Jua")
        self.assertEqual(result.rows[0].label_name, "Afrika Beats")
        self.assertEqual(result.filtered, 1)

    def test_empty_paste(self):
        with self.assertRaises(NoValidRowsError):
            parse_chart_tsv("")


if __name__ == "__main__":
    unittest.main()
