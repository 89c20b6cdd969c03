from __future__ import annotations

from pathlib import Path

from diffslot.diff import dropped_deletions, pair_modifications, parse_diff, unpaired_additions

FIXTURES = Path(__file__).parent / "fixtures"


def _count_marked(text: str, marker: str, header: str) -> int:
    return sum(
        1
        for line in text.split("\n")
        if line.startswith(marker) and not line.startswith(header)
    )


def test_parse_single_hunk_header_and_changes() -> None:
    text = (FIXTURES / "product_card_button.diff").read_text(encoding="utf-8")
    analysis = parse_diff(text)

    assert analysis.summary.total_hunks == 1
    hunk = analysis.hunks[0]
    assert (hunk.old_start, hunk.old_lines, hunk.new_start, hunk.new_lines) == (215, 7, 215, 7)
    assert hunk.context.startswith("const ProductCard")
    assert [c.type for c in hunk.changes] == [
        "context",
        "context",
        "deletion",
        "addition",
        "context",
    ]
    assert hunk.changes[2].content.strip() == "Add to Cart"
    assert hunk.changes[3].content.strip() == "Buy Now"


def test_summary_counts_match_marked_lines() -> None:
    for name in ("product_card_button.diff", "product_card_styling.diff", "comment_only.diff"):
        text = (FIXTURES / name).read_text(encoding="utf-8")
        summary = parse_diff(text).summary
        assert summary.total_additions == _count_marked(text, "+", "+++")
        assert summary.total_deletions == _count_marked(text, "-", "---")


def test_every_hunk_is_emitted() -> None:
    text = (FIXTURES / "product_card_styling.diff").read_text(encoding="utf-8")
    analysis = parse_diff(text)
    assert analysis.summary.total_hunks == 2
    assert [h.old_start for h in analysis.hunks] == [40, 230]


def test_omitted_counts_default_to_one() -> None:
    analysis = parse_diff("@@ -3 +4 @@\n-a\n+b\n")
    hunk = analysis.hunks[0]
    assert hunk.old_lines == 1
    assert hunk.new_lines == 1
    assert hunk.context == ""


def test_no_hunks_is_empty_not_error() -> None:
    analysis = parse_diff("just some text\n+ not in a hunk\n")
    assert analysis.hunks == []
    assert analysis.summary.total_hunks == 0
    assert analysis.summary.total_additions == 0


def test_malformed_header_is_ignored() -> None:
    text = "@@ -1,2 +1,2 @@\n-a\n+b\n@@ garbage @@\n+c\n"
    analysis = parse_diff(text)
    assert analysis.summary.total_hunks == 1
    # The bad header does not open a new hunk; the line lands in the open one.
    assert [c.content for c in analysis.hunks[0].changes] == ["a", "b", "c"]


def test_line_numbers_follow_running_counter() -> None:
    text = "@@ -10,4 +20,4 @@\n ctx\n-old1\n-old2\n+new1\n+new2\n"
    changes = parse_diff(text).hunks[0].changes

    assert changes[0].line_number is None
    assert changes[1].line_number == 11  # 10 + ctx
    assert changes[2].line_number == 12  # 10 + ctx + old1
    assert changes[3].line_number == 21  # 20 + ctx
    assert changes[4].line_number == 22  # 20 + ctx + new1


def test_crlf_and_no_newline_marker() -> None:
    text = "@@ -1 +1 @@\r\n-a\r\n+b\r\n\\ No newline at end of file\r\n"
    changes = parse_diff(text).hunks[0].changes
    assert [(c.type, c.content) for c in changes] == [("deletion", "a"), ("addition", "b")]


def test_pairing_is_positional() -> None:
    changes = parse_diff("@@ -1,2 +1,3 @@\n-a\n-b\n+x\n+y\n+z\n").hunks[0].changes

    mods = pair_modifications(changes)
    assert [(m.old, m.new) for m in mods] == [("a", "x"), ("b", "y")]
    assert all(m.type == "modification" for m in mods)

    extra = unpaired_additions(changes)
    assert [(m.type, m.old, m.new) for m in extra] == [("addition", "", "z")]
    assert dropped_deletions(changes) == 0


def test_trailing_deletions_are_dropped_but_counted() -> None:
    changes = parse_diff("@@ -1,3 +1,1 @@\n-a\n-b\n-c\n+x\n").hunks[0].changes

    assert len(pair_modifications(changes)) == 1
    assert unpaired_additions(changes) == []
    assert dropped_deletions(changes) == 2
