"""Tests for rule loading, character normalization and result formatting."""

import sys
import logging
from pathlib import Path
import pytest

# Add the parent directory to path to import dmsoundex
sys.path.insert(0, str(Path(__file__).parent.parent))

from dmsoundex.daitch_mokotoff import (
    CharacterNormalizer,
    ConfigurationError,
    DaitchMokotoffConfig,
    DaitchMokotoffSoundex,
    ResultFormatter,
    Rule,
    RuleTable,
)
from dmsoundex.daitch_mokotoff_data import ACCENT_FOLDING, DEFAULT_RULES_PATH

SCRIPTS_DIR = Path(__file__).parent.parent / "scripts"


# ════════════════════════════════════════════════════════════════════════════════
# RULE TABLE
# ════════════════════════════════════════════════════════════════════════════════


def test_rules_are_sorted_longest_first():
    table = RuleTable.load(['"s" "4" "4" "4"', '"sch" "4" "4" "4"', '"sh" "4" "4" "4"', '"schtsch" "2" "4" "4"'])
    assert [rule.pattern for rule in table.group("s")] == ["schtsch", "sch", "sh", "s"]


def test_rules_of_equal_length_keep_file_order():
    table = RuleTable.load(['"sz" "4" "4" "4"', '"s" "4" "4" "4"', '"sh" "4" "4" "4"', '"sc" "2" "4" "4"'])
    assert [rule.pattern for rule in table.group("s")] == ["sz", "sh", "sc", "s"]


def test_comments_blank_lines_and_quotes():
    lines = [
        "// header comment",
        "",
        "   ",
        '"ch"   "4|5" "4|5"  "4|5"   // trailing comment',
        "j 1|4 |4 |4",
    ]
    table = RuleTable.load(lines)

    assert table.group("c") == (Rule("ch", "4|5", "4|5", "4|5"),)
    assert table.group("j") == (Rule("j", "1|4", "|4", "|4"),)
    assert len(table) == 2


def test_wrong_field_count_reports_line_number():
    lines = ['"a" "0" "" ""', "// comment", '"b" "7" "7"']
    with pytest.raises(ConfigurationError) as exc_info:
        RuleTable.load(lines, source="broken.txt")

    assert exc_info.value.line_number == 3
    assert exc_info.value.source == "broken.txt"
    assert "line 3" in str(exc_info.value)
    assert "broken.txt" in str(exc_info.value)


def test_too_many_fields_is_rejected():
    with pytest.raises(ConfigurationError):
        RuleTable.load(['"a" "0" "" "" "9"'])


def test_empty_pattern_is_rejected():
    with pytest.raises(ConfigurationError) as exc_info:
        RuleTable.load(['"" "0" "" ""'])
    assert exc_info.value.line_number == 1


def test_empty_source_is_rejected():
    with pytest.raises(ConfigurationError):
        RuleTable.load([])
    with pytest.raises(ConfigurationError):
        RuleTable.load(["// only comments", ""])


def test_missing_rule_file_is_rejected(tmp_path):
    with pytest.raises(ConfigurationError) as exc_info:
        RuleTable.from_path(tmp_path / "missing.txt")
    assert exc_info.value.source.endswith("missing.txt")


def test_from_path_reads_utf8(tmp_path):
    rules_file = tmp_path / "rules.txt"
    rules_file.write_text('"ţ" "3|4" "3|4" "3|4" // t-cedilla\n"a" "0" "" ""\n', encoding="utf-8")

    table = RuleTable.from_path(rules_file)
    assert table.source == str(rules_file)
    assert table.find("ţa", 0) == Rule("ţ", "3|4", "3|4", "3|4")


def test_find_prefers_longest_match():
    table = RuleTable.from_path(DEFAULT_RULES_PATH)
    assert table.find("schtsch", 0).pattern == "schtsch"
    assert table.find("schmidt", 0).pattern == "sch"
    assert table.find("sam", 0).pattern == "s"
    assert table.find("'", 0) is None


def test_rule_matches_at_index():
    rule = Rule("ch", "4|5", "4|5", "4|5")
    assert rule.matches("ch")
    assert rule.matches("auerbach", 6)
    assert not rule.matches("auerbach", 5)


def test_replacement_selection():
    rule = Rule("rs", "4", "4|94", "94")
    assert rule.replacement_for("rsa", 0, at_start=True) == "4"
    assert rule.replacement_for("persona", 2, at_start=False) == "4|94"
    assert rule.replacement_for("perst", 2, at_start=False) == "94"
    assert rule.replacement_for("pers", 2, at_start=False) == "94"
    # y is not a vowel for rule selection
    assert rule.replacement_for("persy", 2, at_start=False) == "94"


def test_rule_and_table_rendering():
    rule = Rule("j", "1|4", "|4", "|4")
    assert str(rule) == "j=(1|4,|4,|4)"

    table = RuleTable.load(['"j" "1|4" "|4" "|4"', '"a" "0" "" ""'])
    assert str(table) == "j=(1|4,|4,|4)\na=(0,,)"


def test_table_groups_are_read_only():
    table = RuleTable.load(['"a" "0" "" ""'])
    with pytest.raises(TypeError):
        table.groups["b"] = ()


def test_bundled_table_info():
    info = RuleTable.from_path(DEFAULT_RULES_PATH).info()
    assert info.rule_count == 119
    assert info.group_count == 28
    assert info.longest_pattern == 7


def test_loading_logs_summary(caplog):
    with caplog.at_level(logging.INFO):
        RuleTable.load(['"a" "0" "" ""'], source="inline")
    assert "Loaded 1 rules in 1 groups from inline" in caplog.text


# ════════════════════════════════════════════════════════════════════════════════
# CONFIGURATION
# ════════════════════════════════════════════════════════════════════════════════


def test_default_config():
    config = DaitchMokotoffConfig.create_default()
    assert config.rules_path == DEFAULT_RULES_PATH
    assert config.code_length == 6
    assert config.padding_digit == "0"
    assert config.vowels == frozenset("aeiou")


def test_config_updates_are_immutable(tmp_path):
    config = DaitchMokotoffConfig.create_default()
    updated = config.with_rules_path(str(tmp_path / "rules.txt"))

    assert updated.rules_path == tmp_path / "rules.txt"
    assert config.rules_path == DEFAULT_RULES_PATH
    assert config.with_code_length(4).code_length == 4


def test_custom_code_length():
    config = DaitchMokotoffConfig.create_default().with_code_length(4)
    assert DaitchMokotoffSoundex(config).encode("GOLDEN") == "5836"


def test_encoder_with_bad_rules_fails_and_logs(tmp_path, caplog):
    rules_file = tmp_path / "rules.txt"
    rules_file.write_text('"a" "0" ""\n', encoding="utf-8")
    config = DaitchMokotoffConfig.create_default().with_rules_path(rules_file)

    with caplog.at_level(logging.ERROR):
        with pytest.raises(ConfigurationError):
            DaitchMokotoffSoundex(config)
    assert "Failed to load Daitch-Mokotoff rules" in caplog.text


def test_encoder_rendering_lists_rules():
    encoder = DaitchMokotoffSoundex.from_lines(['"a" "0" "" ""'])
    assert str(encoder) == "a=(0,,)"
    assert encoder.rule_table_info().source == "<rules>"


# ════════════════════════════════════════════════════════════════════════════════
# NORMALIZATION AND FORMATTING
# ════════════════════════════════════════════════════════════════════════════════


def test_normalizer_drops_whitespace_and_lowercases():
    normalizer = CharacterNormalizer()
    assert normalizer.normalize(" \tBen Aron\n") == "benaron"
    assert normalizer.normalize("O'Brien") == "o'brien"


def test_normalizer_folds_accents():
    normalizer = CharacterNormalizer()
    assert normalizer.normalize("Straßburg") == "strasburg"
    assert normalizer.normalize("ÉREGON") == "eregon"
    assert normalizer.normalize("Łódź") == "lodz"
    assert normalizer.normalize("Þór") == "bor"


def test_normalizer_keeps_characters_outside_folding_map():
    normalizer = CharacterNormalizer()
    assert normalizer.normalize("ţamas") == "ţamas"
    assert normalizer.normalize("K-9") == "k-9"


def test_normalizer_none_and_empty():
    normalizer = CharacterNormalizer()
    assert normalizer.normalize(None) is None
    assert normalizer.normalize("") == ""
    assert normalizer.normalize("   ") == ""


def test_folding_map_is_read_only():
    assert ACCENT_FOLDING["ß"] == "s"
    with pytest.raises(TypeError):
        ACCENT_FOLDING["q"] = "k"


def test_result_formatter():
    formatter = ResultFormatter()
    codes = ("097400", "097500")
    assert formatter.format(codes) == "097400|097500"
    assert formatter.primary(codes) == "097400"
    assert formatter.format(()) == ""
    assert formatter.primary(()) == ""


# ════════════════════════════════════════════════════════════════════════════════
# COMMAND LINE SCRIPT
# ════════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def encode_names():
    sys.path.insert(0, str(SCRIPTS_DIR))
    import encode_names

    yield encode_names
    sys.path.remove(str(SCRIPTS_DIR))


def test_script_prints_codes(encode_names, capsys):
    assert encode_names.main(["AUERBACH", "GOLDEN"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == ["AUERBACH\t097400|097500", "GOLDEN\t583600"]


def test_script_primary_and_names_file(encode_names, tmp_path, capsys):
    names_file = tmp_path / "names.txt"
    names_file.write_text("Peters\n\nJackson\n", encoding="utf-8")

    assert encode_names.main(["--primary", "--names_path", str(names_file)]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == ["Peters\t734000", "Jackson\t154600"]


def test_script_reports_bad_rules(encode_names, tmp_path, capsys):
    assert encode_names.main(["--rules", str(tmp_path / "missing.txt"), "GOLDEN"]) == 2
    assert "ERROR" in capsys.readouterr().err
