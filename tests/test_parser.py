from datetime import datetime, timedelta, timezone

import pytest

from conftest import BASE_URL, T0, at, build_playlist, regular_entries
from hls_clipper.playlist.models import (
    INCOMPLETE_SEGMENT,
    MALFORMED_REFERENCE,
    MALFORMED_TAG,
    OUT_OF_ORDER,
    OVERWRITTEN_TAG,
)
from hls_clipper.playlist.parser import (
    normalize_offset,
    parse_duration,
    parse_playlist,
    parse_program_date_time,
)


class TestTimestamps:
    @pytest.mark.parametrize("sign,hh,mm", [("+", "05", "30"), ("-", "04", "00"), ("+", "00", "00")])
    def test_compact_offset_matches_colon_offset(self, sign, hh, mm):
        base = "2025-06-03T08:03:33.250"
        assert parse_program_date_time(f"{base}{sign}{hh}{mm}") == parse_program_date_time(
            f"{base}{sign}{hh}:{mm}"
        )

    def test_normalize_offset(self):
        assert normalize_offset("2025-06-03T08:03:33.000+0530") == "2025-06-03T08:03:33.000+05:30"
        assert normalize_offset("2025-06-03T08:03:33.000+05:30") == "2025-06-03T08:03:33.000+05:30"

    def test_zulu_is_utc(self):
        ts = parse_program_date_time("2025-06-03T02:33:33.000Z")
        assert ts == datetime(2025, 6, 3, 2, 33, 33, tzinfo=timezone.utc)

    def test_offset_is_kept(self):
        ts = parse_program_date_time("2025-06-03T08:03:33.000+0530")
        assert ts.utcoffset() == timedelta(hours=5, minutes=30)

    @pytest.mark.parametrize("value", ["not-a-date", "2025-06-03T08:03:33", ""])
    def test_invalid_or_naive_raises(self, value):
        with pytest.raises(ValueError):
            parse_program_date_time(value)


class TestDurations:
    @pytest.mark.parametrize("line,expected", [
        ("#EXTINF:6.006,", 6.006),
        ("#EXTINF:6,", 6.0),
        ("#EXTINF:4.5,live title", 4.5),
        ("#EXTINF:10", 10.0),
        ("#EXTINF: 2.0 ,", 2.0),
    ])
    def test_valid(self, line, expected):
        assert parse_duration(line) == pytest.approx(expected)

    @pytest.mark.parametrize("line", ["#EXTINF:,", "#EXTINF:abc,", "#EXTINF:-1,", "#EXTINF:1.2.3,"])
    def test_invalid(self, line):
        with pytest.raises(ValueError):
            parse_duration(line)


class TestParsePlaylist:
    def test_well_formed(self):
        result = parse_playlist(build_playlist(regular_entries(3)), BASE_URL)

        assert len(result) == 3
        assert [s.url for s in result.segments] == [
            "http://cdn.test/live/seg0.ts",
            "http://cdn.test/live/seg1.ts",
            "http://cdn.test/live/seg2.ts",
        ]
        assert result.segments[0].start_time == T0
        assert result.segments[1].end_time == at(11)
        assert result.notices == ()

    def test_absolute_and_rooted_references(self):
        text = build_playlist([
            (0, 6, "https://other.test/a.ts"),
            (6, 6, "/root/b.ts"),
        ])
        result = parse_playlist(text, BASE_URL)
        assert [s.url for s in result.segments] == ["https://other.test/a.ts", "http://cdn.test/root/b.ts"]

    def test_reference_without_timestamp_is_dropped(self):
        text = build_playlist([
            (0, 6, "seg0.ts"),
            (None, 6, "orphan.ts"),
            (10, 6, "seg2.ts"),
        ])
        result = parse_playlist(text, BASE_URL)

        assert [s.url.rsplit("/", 1)[-1] for s in result.segments] == ["seg0.ts", "seg2.ts"]
        dropped = result.notices_with(INCOMPLETE_SEGMENT)
        assert len(dropped) == 1
        assert "orphan.ts" in dropped[0].message

    def test_reference_without_duration_is_dropped(self):
        text = build_playlist([(0, None, "seg0.ts"), (6, 6, "seg1.ts")])
        result = parse_playlist(text, BASE_URL)
        assert [s.start_time for s in result.segments] == [at(6)]
        assert len(result.notices_with(INCOMPLETE_SEGMENT)) == 1

    def test_malformed_timestamp_drops_segment(self):
        text = (
            "#EXT-X-PROGRAM-DATE-TIME:garbage\n#EXTINF:6.0,\nbad.ts\n"
            + build_playlist([(6, 6, "good.ts")], header=False)
        )
        result = parse_playlist(text, BASE_URL)
        assert [s.url for s in result.segments] == ["http://cdn.test/live/good.ts"]
        assert len(result.notices_with(MALFORMED_TAG)) == 1
        assert len(result.notices_with(INCOMPLETE_SEGMENT)) == 1

    def test_malformed_duration_drops_segment(self):
        text = build_playlist([(0, None, "x")], header=False).replace("x\n", "#EXTINF:nope,\nbad.ts\n")
        result = parse_playlist(text, BASE_URL)
        assert len(result) == 0
        assert result.notices_with(MALFORMED_TAG)[0].line_no == 2

    def test_stale_tags_do_not_leak_into_next_segment(self):
        text = build_playlist([
            (0, None, "no-duration.ts"),
            (None, 6, "no-time.ts"),
        ])
        result = parse_playlist(text, BASE_URL)
        assert len(result) == 0
        assert len(result.notices_with(INCOMPLETE_SEGMENT)) == 2

    def test_repeated_tags_last_write_wins(self):
        text = (
            f"#EXT-X-PROGRAM-DATE-TIME:2025-06-03T08:03:00.000+0530\n"
            f"#EXT-X-PROGRAM-DATE-TIME:2025-06-03T08:03:04.000+0530\n"
            f"#EXTINF:2.0,\n"
            f"#EXTINF:3.0,\n"
            f"seg.ts\n"
        )
        result = parse_playlist(text, BASE_URL)

        assert len(result) == 1
        assert result.segments[0].start_time == at(4)
        assert result.segments[0].duration == 3.0
        assert len(result.notices_with(OVERWRITTEN_TAG)) == 2

    def test_blank_lines_unknown_tags_and_crlf(self):
        text = build_playlist(regular_entries(2)).replace("\n", "\r\n")
        text = text.replace("seg1.ts", "#EXT-X-DISCONTINUITY\r\n\r\nseg1.ts")
        result = parse_playlist(text + "#EXT-X-ENDLIST\r\n", BASE_URL)
        assert len(result) == 2
        assert result.notices == ()

    def test_trailing_tags_reported(self):
        text = build_playlist(regular_entries(1)) + "#EXTINF:6.0,\n"
        result = parse_playlist(text, BASE_URL)
        assert len(result) == 1
        assert result.notices_with(INCOMPLETE_SEGMENT)[0].line_no is None

    def test_unresolvable_reference_is_dropped(self):
        text = build_playlist([(0, 6, "seg0.ts"), (6, 6, "http://[bad/seg1.ts"), (12, 6, "seg2.ts")])
        result = parse_playlist(text, BASE_URL)

        assert [s.start_time for s in result.segments] == [at(0), at(12)]
        bad = result.notices_with(MALFORMED_REFERENCE)
        assert len(bad) == 1
        assert bad[0].line_no is not None
        assert "[bad" in bad[0].message
        assert result.notices_with(OVERWRITTEN_TAG) == ()

    def test_backwards_timestamp_is_dropped(self):
        text = build_playlist([(10, 6, "a.ts"), (0, 6, "b.ts"), (16, 6, "c.ts")])
        result = parse_playlist(text, BASE_URL)
        assert [s.start_time for s in result.segments] == [at(10), at(16)]
        assert len(result.notices_with(OUT_OF_ORDER)) == 1

    def test_empty_playlist(self):
        result = parse_playlist("#EXTM3U\n#EXT-X-VERSION:3\n", BASE_URL)
        assert len(result) == 0
        assert result.segments == ()

    def test_order_preserved_and_non_decreasing(self):
        entries = [(i * 2.0, 2.0, f"s{i:02d}.ts") for i in range(20)]
        result = parse_playlist(build_playlist(entries), BASE_URL)
        starts = [s.start_time for s in result.segments]
        assert starts == sorted(starts)
        assert [s.url.rsplit("/", 1)[-1] for s in result.segments] == [e[2] for e in entries]

    def test_reparse_is_identical(self):
        text = build_playlist(regular_entries(5) + [(None, 6, "orphan.ts")])
        assert parse_playlist(text, BASE_URL) == parse_playlist(text, BASE_URL)

    def test_every_segment_is_complete(self):
        text = build_playlist([
            (0, 6, "a.ts"), (None, 6, "b.ts"), (12, None, "c.ts"), (18, 0, "d.ts"),
        ])
        for seg in parse_playlist(text, BASE_URL).segments:
            assert seg.start_time.utcoffset() is not None
            assert seg.duration >= 0
