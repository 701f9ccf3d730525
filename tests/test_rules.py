"""
tests/test_rules.py — Configuration interpretation and simplification scanning.

Covers:
    1.  Company-code interpretation from a bare result map
    2.  Rule flattening, failing-rule isolation, markdown report
    3.  Module helpers (custom document types, cost elements, movement types)
    4.  Simplification rule tables: counts, unique ids, severities
    5.  Source and identifier scanning, ordering, summary scoring
    6.  Repeat evaluation over one result map gives the same findings in the same order
"""

import pytest

from landscape.core.exceptions import RuleEvaluationError
from landscape.extraction.extractors import build_default_registry
from landscape.extraction.orchestrator import ExtractionOrchestrator
from landscape.rules.config_interpreter import ConfigInterpreter, evaluate_rule, flatten_results
from landscape.rules.config_rules import CONFIG_RULES, ConfigRule
from landscape.rules.simplification import (
    RULES_BY_MODULE,
    SEVERITY_ORDER,
    Severity,
    all_rules,
    rules_by_category,
    rules_by_severity,
)
from landscape.rules.simplification.scanner import (
    SimplificationScanner,
    check_identifiers,
    check_source,
    collect_identifiers,
    sort_findings,
)


def _two_company_codes():
    return {"X": {"companyCodes": [
        {"code": "1000", "text": "Main Co"},
        {"code": "2000", "text": "Second Co"},
    ]}}


# ═════════════════════════════════════════════════════════════════════════════
# 1-3. Config interpretation
# ═════════════════════════════════════════════════════════════════════════════


class TestConfigInterpreter:
    def test_company_codes(self):
        findings = ConfigInterpreter(_two_company_codes()).interpret()
        cocd = [f for f in findings if f["ruleId"] == "FI-COCD-001"]
        assert len(cocd) == 1
        text = cocd[0]["interpretation"]
        assert "2 company code(s) configured" in text
        assert "1000" in text
        assert "2000" in text
        assert text == "2 company code(s) configured: 1000 (Main Co), 2000 (Second Co)"

    def test_rule_catalog(self):
        ids = [r.id for r in CONFIG_RULES]
        assert len(ids) == 9
        assert len(set(ids)) == 9
        assert "SEC-SAPALL-001" in ids

    def test_empty_results_yield_nothing(self):
        interpreter = ConfigInterpreter({})
        assert interpreter.interpret() == []
        assert interpreter.rules_evaluated > len(CONFIG_RULES)

    def test_failed_results_ignored_by_flatten(self):
        flat = flatten_results({"A": {"error": "denied", "companyCodes": [1]}, "B": {"plants": [2]}})
        assert flat == {"plants": [2]}

    def test_failing_rule_isolated(self):
        broken = ConfigRule(
            id="BROKEN-001", description="Broken",
            condition=lambda d: True, interpretation=lambda d: d["missing"]["key"],
        )
        interpreter = ConfigInterpreter(_two_company_codes(), rules=[broken, *CONFIG_RULES])
        findings = interpreter.interpret()
        assert [f["ruleId"] for f in interpreter.failed_rules] == ["BROKEN-001"]
        assert any(f["ruleId"] == "FI-COCD-001" for f in findings)

    def test_evaluate_rule_wraps_errors(self):
        broken = ConfigRule(id="X-1", description="x", condition=lambda d: 1 / 0, interpretation=str)
        with pytest.raises(RuleEvaluationError) as exc:
            evaluate_rule(broken, {})
        assert exc.value.rule_id == "X-1"

    def test_helpers(self):
        results = {
            "FI": {"documentTypes": [{"type": "SA"}, {"type": "ZA"}], "companyCodes": [{"code": "1000"}]},
            "CO": {
                "costElements": [{"category": "1"}, {"category": "42"}, {"category": "1"}],
                "controllingAreas": [{"area": "1000", "currency": "EUR"}],
            },
            "MM": {"movementTypes": [{"type": "101"}, {"type": "901"}, {"type": "abc"}]},
        }
        interpreter = ConfigInterpreter(results)
        by_id = {f["ruleId"]: f for f in interpreter.interpret()}
        assert by_id["FI-DOCTYPE"]["interpretation"].startswith("1 custom document type(s): ZA")
        assert "2 primary, 1 secondary" in by_id["CO-ELEMENTS"]["interpretation"]
        assert "901" in by_id["MM-MVTYPE"]["interpretation"]
        assert "FI-CO" in by_id["INT-POINTS"]["interpretation"]
        assert "CO-AREA-001" in by_id

    def test_secondary_categories_configurable(self):
        results = {"CO": {"costElements": [{"category": "99"}]}}
        interpreter = ConfigInterpreter(results, secondary_categories=frozenset({"99"}))
        finding = next(f for f in interpreter.interpret() if f["ruleId"] == "CO-ELEMENTS")
        assert "0 primary, 1 secondary" in finding["interpretation"]

    def test_reports(self):
        interpreter = ConfigInterpreter(_two_company_codes())
        interpreter.interpret()
        report = interpreter.to_dict()
        assert report["totalInterpretations"] == len(interpreter.interpretations)
        md = interpreter.to_markdown()
        assert md.startswith("# Configuration Interpretation Report")
        assert "1000 (Main Co)" in md


# ═════════════════════════════════════════════════════════════════════════════
# 4. Simplification rule tables
# ═════════════════════════════════════════════════════════════════════════════


class TestSimplificationRules:
    def test_counts_per_module(self):
        counts = {module: len(rules) for module, rules in RULES_BY_MODULE.items()}
        assert counts == {"FIN": 5, "CO": 8, "MM": 4, "SD": 8, "BP": 3, "ABAP": 5, "CFG": 8}
        assert len(all_rules()) == 41

    def test_unique_ids(self):
        ids = [r.id for r in all_rules()]
        assert len(ids) == len(set(ids))
        assert all(i.startswith("SIMPL-") for i in ids)

    def test_bseg_rule(self):
        rule = next(r for r in all_rules() if r.id == "SIMPL-FIN-001")
        assert rule.severity == Severity.CRITICAL
        assert rule.matches("SELECT * FROM bseg INTO TABLE lt")
        assert not rule.matches("SELECT * FROM bsegx")

    def test_filters(self):
        critical = rules_by_severity("critical")
        assert critical
        assert all(r.severity == Severity.CRITICAL for r in critical)
        assert rules_by_category("zzz-none") == []

    def test_severity_order(self):
        assert SEVERITY_ORDER[Severity.CRITICAL] < SEVERITY_ORDER[Severity.LOW]


# ═════════════════════════════════════════════════════════════════════════════
# 5. Scanner
# ═════════════════════════════════════════════════════════════════════════════


_RECON = "\n".join([
    "REPORT zfi_recon.",
    "SELECT * FROM bseg INTO TABLE lt_bseg WHERE bukrs = p_bukrs.",
    "SELECT * FROM bsis INTO TABLE lt_open WHERE hkont = p_hkont.",
])


class TestScanner:
    def test_check_source_lines(self):
        findings = check_source(_RECON, "ZFI_RECON")
        by_id = {f["ruleId"]: f for f in findings}
        assert by_id["SIMPL-FIN-001"]["matches"] == [
            {"line": 2, "content": "SELECT * FROM bseg INTO TABLE lt_bseg WHERE bukrs = p_bukrs."},
        ]
        assert by_id["SIMPL-FIN-003"]["matches"][0]["line"] == 3
        assert all(f["object"] == "ZFI_RECON" for f in findings)

    def test_clean_source(self):
        assert check_source("WRITE 'hello'.", "ZCLEAN") == []

    def test_sorted_by_severity(self):
        findings = sort_findings(check_source(_RECON + "\nSELECT * FROM cska.", "Z"))
        orders = [SEVERITY_ORDER[f["severity"]] for f in findings]
        assert orders == sorted(orders)

    def test_collect_identifiers(self):
        results = {
            "USAGE_STATISTICS": {"transactionUsage": [{"tcode": "FB01", "executions": 5}, {"tcode": "XK01", "executions": 0}]},
            "CUSTOM_CODE": {"customObjects": [{"name": "ZFI_RECON"}]},
        }
        assert collect_identifiers(results, ["T001"]) == ["FB01", "T001", "ZFI_RECON"]

    def test_identifier_rules_whole_name(self):
        config_rules = [r for r in all_rules() if r.pattern_type.value == "config"]
        assert config_rules
        assert check_identifiers(["NOT_A_REAL_IDENTIFIER_42"]) == []
        assert [f["ruleId"] for f in check_identifiers(["NRIV"])] == ["SIMPL-CFG-001"]
        assert check_identifiers(["NRIVX"]) == []

    def test_scanner_over_mock_code(self, mock_context):
        from landscape.extraction.extractors.integration import CustomCodeExtractor

        results = {"CUSTOM_CODE": CustomCodeExtractor(mock_context).extract().result}
        scanner = SimplificationScanner(results)
        findings = scanner.scan()
        assert any(f["ruleId"] == "SIMPL-FIN-001" and f["object"] == "ZFI_RECON" for f in findings)
        summary = scanner.summary()
        assert summary["totalFindings"] == len(findings)
        assert summary["bySeverity"]["critical"] >= 1
        assert summary["remediationScore"] >= 10


# ═════════════════════════════════════════════════════════════════════════════
# 6. Repeat evaluation
# ═════════════════════════════════════════════════════════════════════════════


class TestRepeatEvaluation:
    @pytest.fixture()
    def results(self, mock_context):
        return ExtractionOrchestrator(build_default_registry(), mock_context, concurrency=2).run().results

    def test_interpretations_stable(self, results):
        interpreter = ConfigInterpreter(results)
        first = interpreter.interpret()
        evaluated = interpreter.rules_evaluated
        assert first
        assert interpreter.interpret() == first
        assert interpreter.rules_evaluated == evaluated
        assert ConfigInterpreter(results).interpret() == first

    def test_scan_stable(self, results):
        scanner = SimplificationScanner(results, tables_read=["BSEG", "NRIV"])
        first = scanner.scan()
        summary = scanner.summary()
        assert first
        assert scanner.scan() == first
        assert scanner.summary() == summary
        assert SimplificationScanner(results, tables_read=["BSEG", "NRIV"]).scan() == first
