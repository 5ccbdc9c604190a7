"""Tests for orchestra/policy.py."""

import pytest

from orchestra.policy import TIER_POLICIES, PolicyMode, enforce_no_demo, scan_for_demo_code

_CLEAN = """\
import { fetchUser } from './api';

export async function loadProfile(id: string) {
  const user = await fetchUser(id);
  return user.profile;
}
"""

_DEMO = """\
// TODO: wire up the real API
const user = mockUser();
const title = 'Lorem ipsum dolor';
export default user;
"""


def test_tier_table():
    assert not TIER_POLICIES[1].enabled
    assert not TIER_POLICIES[2].enabled
    assert TIER_POLICIES[3].mode is PolicyMode.BLOCK
    assert TIER_POLICIES[4].mode is PolicyMode.WARN
    assert TIER_POLICIES[5].mode is PolicyMode.WARN


def test_scan_clean_code():
    findings, confidence = scan_for_demo_code(_CLEAN)
    assert findings == []
    assert confidence == 1.0


def test_scan_reports_one_finding_per_line():
    findings, confidence = scan_for_demo_code(_DEMO)
    assert [(f.line, f.severity) for f in findings] == [(1, "medium"), (2, "medium"), (3, "high")]
    assert findings[1].text == "const user = mockUser();"
    # 0.4 + 3 * 0.2, capped
    assert confidence == 1.0


def test_scan_first_matching_rule_wins():
    findings, _ = scan_for_demo_code("placeholder dummy demo stub")
    assert len(findings) == 1
    assert findings[0].severity == "high"
    assert "placeholder" in findings[0].rule


def test_scan_low_severity_only():
    findings, confidence = scan_for_demo_code("def handler():\n    pass  # stub")
    assert [f.severity for f in findings] == ["low"]
    assert confidence == pytest.approx(0.4)


@pytest.mark.parametrize("tier", [1, 2])
def test_low_tiers_are_not_checked(tier):
    check = enforce_no_demo(_DEMO, tier)
    assert check.allowed is True
    assert check.message == "Policy disabled for this tier"
    assert check.findings == []


def test_clean_output_passes():
    check = enforce_no_demo(_CLEAN, 3)
    assert check.allowed is True
    assert check.offending_lines == 0
    assert check.message == "Output passed validation"


def test_tier_3_blocks():
    check = enforce_no_demo(_DEMO, 3)
    assert check.allowed is False
    assert check.requires_regeneration is True
    assert check.offending_lines == 3
    assert check.message.startswith("Blocked: 3")


@pytest.mark.parametrize("tier", [4, 5])
def test_higher_tiers_warn(tier):
    check = enforce_no_demo(_DEMO, tier)
    assert check.allowed is True
    assert check.requires_regeneration is False
    assert check.message.startswith("Warning: 3")


def test_weak_evidence_below_threshold_is_allowed():
    # A lone low-severity hit gives confidence 0.4: under tier 3's 0.6.
    check = enforce_no_demo("pass  # stub", 3)
    assert check.allowed is True
    assert check.offending_lines == 1
    assert check.message == "Confidence below threshold, allowing output"


def test_tier_5_threshold_is_inclusive():
    check = enforce_no_demo("pass  # stub", 5)
    assert check.message.startswith("Warning: 1")


def test_unknown_tier_rejected():
    with pytest.raises(ValueError, match="tier"):
        enforce_no_demo(_CLEAN, 7)
