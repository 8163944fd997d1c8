"""Tests for the masking engine: placeholders, registry, detector, masker, restorer."""

import logging
import sys, os
from concurrent.futures import ThreadPoolExecutor
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest
import re2

from privacy_shield import (
    MaskingEngine, PatternRegistry, restore, summarize,
    PatternError, InvalidMatcher, InvalidLabel, DuplicateKey,
)
from privacy_shield.detector import detect, scan
from privacy_shield.masker import mask
from privacy_shield.patterns import make_custom_rule
from privacy_shield.placeholders import (
    format_placeholder, is_placeholder_shaped, sequence_letters, validate_label,
)

JP_TEXT = "田中太郎さんのメールはtanaka@example.comです"


def _bare_engine() -> MaskingEngine:
    return MaskingEngine(PatternRegistry(include_builtins=False))


# ── Placeholders ─────────────────────────────────────────────────────

def test_sequence_letters():
    assert sequence_letters(1) == "A"
    assert sequence_letters(26) == "Z"
    assert sequence_letters(27) == "AA"
    assert sequence_letters(52) == "AZ"
    assert sequence_letters(53) == "BA"
    assert sequence_letters(702) == "ZZ"
    assert sequence_letters(703) == "AAA"


def test_sequence_letters_rejects_zero():
    with pytest.raises(ValueError):
        sequence_letters(0)


def test_format_placeholder():
    assert format_placeholder("Person", 2) == "[Person_B]"
    assert is_placeholder_shaped("[Person_B]")
    assert not is_placeholder_shaped("Person_B")


def test_validate_label():
    validate_label("Order_ID")
    for bad in ("", "Order ID", "Ord[er]"):
        with pytest.raises(InvalidLabel):
            validate_label(bad)


# ── Registry ─────────────────────────────────────────────────────────

def test_builtin_order():
    assert PatternRegistry().keys() == ["name", "email", "phone", "address", "company"]


def test_custom_rules_follow_builtins():
    reg = PatternRegistry()
    reg.add(make_custom_rule("zzz", r"Z\d+", "Zed", "zed"))
    reg.remove("email")
    assert "email" not in reg
    reg.restore_builtin("email")
    assert reg.keys() == ["name", "email", "phone", "address", "company", "zzz"]


def test_remove_unknown_is_noop():
    reg = PatternRegistry()
    reg.remove("nope")
    assert len(reg) == 5


def test_add_without_replace_rejects_duplicate():
    reg = PatternRegistry()
    with pytest.raises(DuplicateKey):
        reg.add(make_custom_rule("email", r"x@y", "Email", "email"), replace=False)
    assert reg.get("email").builtin


def test_add_or_replace_with_compiled_matcher():
    reg = PatternRegistry(include_builtins=False)
    rule = reg.add_or_replace("ticket", re2.compile(r"T-\d+"), "Ticket", "ticket", source=r"T-\d+")
    assert reg.list() == [rule]
    assert rule.source == r"T-\d+"


def test_snapshot_filters_keys():
    reg = PatternRegistry()
    assert [r.key for r in reg.snapshot({"phone", "email", "missing"})] == ["email", "phone"]


# ── Detector ─────────────────────────────────────────────────────────

def test_detect_email_offsets():
    found = detect("Contact alice@example.com please", PatternRegistry().snapshot())
    assert len(found) == 1
    assert found[0].rule_key == "email"
    assert found[0].original_text == "alice@example.com"
    assert (found[0].start_offset, found[0].end_offset) == (8, 25)


def test_detect_skips_existing_placeholders():
    found = detect("[Email_A] and bob@x.io", PatternRegistry().snapshot())
    assert [d.original_text for d in found] == ["bob@x.io"]


def test_detect_skips_bracketed_matches():
    engine = _bare_engine()
    engine.add_pattern("tag", r"\[[A-Za-z_]+\]", "Tag")
    assert engine.detect("[Person_A] and [hello]") == []


def test_scan_summary_caps_samples():
    report = scan("a@x.io b@x.io c@x.io d@x.io", PatternRegistry().snapshot())
    assert report.has_personal_info
    assert report.total_detections == 4
    assert report.summary["email"]["count"] == 4
    assert report.summary["email"]["samples"] == ["a@x.io", "b@x.io", "c@x.io"]


def test_scan_empty():
    report = scan("", PatternRegistry().snapshot())
    assert not report.has_personal_info
    assert report.summary == {}


# ── Masker ───────────────────────────────────────────────────────────

def test_mask_japanese_name_and_email():
    engine = MaskingEngine()
    result = engine.mask(JP_TEXT)
    assert result.masked_text == "[Person_A]のメールは[Email_A]です"
    assert result.mapping_table == {
        "[Person_A]": "田中太郎さん",
        "[Email_A]": "tanaka@example.com",
    }
    assert [d.rule_key for d in result.detections] == ["name", "email"]
    stats = engine.summarize(result.detections)
    assert {k: v["count"] for k, v in stats.items()} == {"name": 1, "email": 1}


def test_mask_empty_and_whitespace():
    engine = MaskingEngine()
    for text in ("", "   \n\t"):
        result = engine.mask(text)
        assert result.masked_text == ""
        assert result.detections == []
        assert result.mapping_table == {}


def test_mask_numbers_left_to_right():
    result = MaskingEngine().mask("bob@a.io then amy@b.io")
    assert result.masked_text == "[Email_A] then [Email_B]"
    assert result.mapping_table == {"[Email_A]": "bob@a.io", "[Email_B]": "amy@b.io"}
    starts = [d.start_offset for d in result.detections]
    assert starts == sorted(starts)


def test_mask_sequence_past_z():
    text = " ".join(f"u{i}@x.io" for i in range(28))
    result = MaskingEngine().mask(text)
    placeholders = [d.placeholder for d in result.detections]
    assert placeholders[25:] == ["[Email_Z]", "[Email_AA]", "[Email_AB]"]
    assert len(set(placeholders)) == 28


def test_longest_match_wins_across_rules():
    engine = _bare_engine()
    engine.add_pattern("short", r"\d{3}", "Short")
    engine.add_pattern("long", r"\d{3}-\d{4}", "Long")
    result = engine.mask("call 555-1234 now")
    assert result.masked_text == "call [Long_A] now"
    assert len(result.detections) == 1


def test_equal_length_goes_to_earlier_rule():
    engine = _bare_engine()
    engine.add_pattern("first", r"AB\d", "First")
    engine.add_pattern("second", r"[A-Z]{2}\d", "Second")
    assert engine.mask("x AB1 y").masked_text == "x [First_A] y"


def test_shared_label_keeps_placeholders_unique():
    engine = _bare_engine()
    engine.add_pattern("a", r"A\d+", "Id")
    engine.add_pattern("b", r"B\d+", "Id")
    result = engine.mask("A1 B2")
    assert result.masked_text == "[Id_A] [Id_B]"


def test_existing_placeholder_letters_not_reused():
    result = MaskingEngine().mask("[Email_A] is old, new is bob@x.io")
    assert result.masked_text == "[Email_A] is old, new is [Email_B]"
    assert result.mapping_table == {"[Email_B]": "bob@x.io"}


def test_no_double_masking():
    engine = MaskingEngine()
    first = engine.mask(JP_TEXT)
    second = engine.mask(first.masked_text)
    assert second.detections == []
    assert second.masked_text == first.masked_text


def test_mask_is_deterministic():
    engine = MaskingEngine()
    text = "佐藤花子様 03-1234-5678 sato@example.jp, 鈴木一郎さん suzuki@example.jp"
    a, b = engine.mask(text), engine.mask(text)
    assert a.detections == b.detections
    assert a.masked_text == b.masked_text
    assert len(set(a.mapping_table)) == len(a.detections)


def test_round_trip():
    engine = MaskingEngine()
    for text in (
        JP_TEXT,
        "株式会社山田商事の佐藤花子様に連絡、電話は03-1234-5678、住所は東京都千代田区丸の内1-1-1",
        "we called Acme Corp. today, ask for bob@acme.io",
        "nothing sensitive here",
    ):
        result = engine.mask(text)
        assert engine.restore(result.masked_text, result.mapping_table) == text


def test_phone_is_masked():
    result = MaskingEngine().mask("電話は03-1234-5678です")
    assert "03-1234-5678" not in result.masked_text
    assert result.mapping_table == {"[Phone_A]": "03-1234-5678"}


def test_english_company():
    result = MaskingEngine().mask("we called Acme Corp. today")
    assert result.masked_text == "we called [Company_A] today"


def test_module_level_mask_uses_given_rules():
    rules = PatternRegistry().snapshot({"email"})
    assert mask(JP_TEXT, rules).masked_text == "田中太郎さんのメールは[Email_A]です"


# ── Restorer ─────────────────────────────────────────────────────────

def test_restore_single():
    assert restore("[Person_A] called", {"[Person_A]": "Satoshi"}) == "Satoshi called"


def test_restore_empty_inputs():
    assert restore("no tokens here", {}) == "no tokens here"
    assert restore("", {"[X_A]": "y"}) == ""


def test_restore_every_occurrence():
    assert restore("[Person_A] & [Person_A]", {"[Person_A]": "Ann"}) == "Ann & Ann"


def test_restore_tolerates_missing_and_foreign_tokens():
    table = {"[Person_A]": "x", "[Person_B]": "y"}
    assert restore("[Person_B] and [Foo_A]", table) == "y and [Foo_A]"


def test_restore_does_not_rescan_values():
    assert restore("[A_A]", {"[A_A]": "[B_A]", "[B_A]": "oops"}) == "[B_A]"


def test_restore_literal_keys():
    assert restore("the secret (x+)", {"(x+)": "value"}) == "the secret value"
    assert restore("[P_AA][P_A]", {"[P_A]": "x", "[P_AA]": "y"}) == "yx"


def test_restore_idempotent():
    table = {"[Person_A]": "Satoshi"}
    once = restore("[Person_A] called", table)
    assert restore(once, table) == once


# ── Statistics ───────────────────────────────────────────────────────

def test_summarize_omits_zero_counts():
    result = MaskingEngine().mask("a@x.io b@x.io")
    assert summarize(result.detections) == {
        "email": {"description": "Email address", "count": 2},
    }
    assert summarize([]) == {}


# ── Engine: custom patterns ──────────────────────────────────────────

def test_custom_order_pattern():
    engine = MaskingEngine()
    engine.add_pattern("order_id", r"ORD-\d{6}", "Order", "order id")
    result = engine.mask("Order ORD-123456 shipped")
    assert result.masked_text == "Order [Order_A] shipped"
    assert result.mapping_table == {"[Order_A]": "ORD-123456"}
    assert engine.restore(result.masked_text, result.mapping_table) == "Order ORD-123456 shipped"


@pytest.mark.parametrize("source", ["(unclosed", r"(?<=x)y", "a*", "", "a" * 1001])
def test_invalid_matcher_leaves_registry_unchanged(source):
    engine = MaskingEngine()
    before = engine.registry.keys()
    with pytest.raises(InvalidMatcher):
        engine.add_pattern("bad", source, "Bad")
    assert engine.registry.keys() == before


def test_invalid_label_is_pattern_error():
    engine = MaskingEngine()
    with pytest.raises(PatternError):
        engine.add_pattern("x", r"X\d", "Bad Label")
    assert "x" not in engine.registry


def test_add_pattern_overwrites_in_place():
    engine = MaskingEngine()
    engine.add_pattern("order_id", r"ORD-\d{6}", "Order")
    engine.add_pattern("ticket", r"T-\d+", "Ticket")
    engine.add_pattern("order_id", r"ORD-\d+", "Ord")
    infos = engine.list_patterns()
    assert [p.key for p in infos][-2:] == ["order_id", "ticket"]
    assert infos[-2].label == "Ord"
    assert not infos[-2].builtin and infos[0].builtin


def test_validate_and_test_pattern():
    engine = MaskingEngine()
    bad = engine.validate_pattern("(")
    assert not bad.valid and bad.error
    assert engine.validate_pattern(r"ORD-\d+").valid
    assert engine.test_pattern(r"ORD-\d{6}", "ORD-123456 and ORD-654321") == [
        "ORD-123456", "ORD-654321",
    ]


def test_active_rule_keys():
    engine = MaskingEngine()
    assert engine.mask(JP_TEXT, {"email", "unknown"}).masked_text == "田中太郎さんのメールは[Email_A]です"
    assert engine.mask(JP_TEXT, set()).masked_text == JP_TEXT


def test_logs_keys_not_values(caplog):
    engine = MaskingEngine()
    with caplog.at_level(logging.DEBUG):
        engine.add_pattern("order_id", r"ORD-\d{6}", "Order")
        engine.mask(JP_TEXT)
    assert "added pattern order_id" in caplog.text
    assert "tanaka@example.com" not in caplog.text
    assert "田中太郎" not in caplog.text


def test_concurrent_mask_and_mutation():
    engine = MaskingEngine()

    def churn(i):
        engine.add_pattern(f"tmp{i}", rf"TMP{i}-\d+", "Tmp")
        engine.remove_pattern(f"tmp{i}")

    def work(_):
        result = engine.mask(JP_TEXT)
        return engine.restore(result.masked_text, result.mapping_table)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(churn, range(20)))
        restored = list(pool.map(work, range(50)))
    assert set(restored) == {JP_TEXT}
    assert len(engine.registry) == 5


# ── Placeholders next to fresh matches ───────────────────────────────

def test_match_next_to_placeholder_is_masked():
    engine = _bare_engine()
    engine.add_pattern("member", r"\S+M-\d{5}", "Member")
    assert engine.mask("会員M-12345").masked_text == "[Member_A]"
    result = engine.mask("[Person_A]会員M-12345")
    assert result.masked_text == "[Person_A][Member_A]"
    assert result.mapping_table == {"[Member_A]": "会員M-12345"}
    assert result.detections[0].start_offset == 10


def test_builtins_between_placeholders():
    result = MaskingEngine().mask("[Person_A]bob@x.io[Email_A]")
    assert result.masked_text == "[Person_A][Email_B][Email_A]"
    assert restore(result.masked_text, result.mapping_table) == "[Person_A]bob@x.io[Email_A]"


def test_heavily_masked_document_keeps_every_match():
    chunks = [f"[Email_{sequence_letters(i)}] u{i}@x.io" for i in range(1, 2001)]
    text = " ".join(chunks)
    result = MaskingEngine().mask(text, {"email"})
    assert len(result.detections) == 2000
    assert restore(result.masked_text, result.mapping_table) == text


def test_nested_candidates_resolve_to_longest():
    engine = _bare_engine()
    engine.add_pattern("inner", r"B\d", "Inner")
    engine.add_pattern("outer", r"AB\d+C", "Outer")
    engine.add_pattern("tail", r"\dC D", "Tail")
    result = engine.mask("AB12C D B3")
    assert result.masked_text == "[Outer_A] D [Inner_A]"


# ── Registry labels ──────────────────────────────────────────────────

def test_registry_rejects_unparseable_labels():
    reg = PatternRegistry(include_builtins=False)
    with pytest.raises(InvalidLabel):
        reg.add_or_replace("ticket", re2.compile(r"T-\d+"), "Ticket No", "ticket")
    with pytest.raises(InvalidLabel):
        reg.add(make_custom_rule("ticket", r"T-\d+", "[Ticket]", "ticket"))
    assert len(reg) == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
