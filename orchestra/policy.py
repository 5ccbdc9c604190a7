"""No-demo policy: flag placeholder, mock and scaffold lines in generated output.

Tiers 1-2 run no check. Tier 3 blocks offending output and asks for a
regeneration; tiers 4-5 only warn. A scan whose confidence falls below the
tier's threshold is let through.
"""

import re
from dataclasses import dataclass
from enum import Enum

from orchestra.models import PolicyCheck, PolicyFinding


MIN_ENFORCED_TIER = 3


class PolicyMode(str, Enum):
    DISABLED = "disabled"
    WARN = "warn"
    BLOCK = "block"


@dataclass(frozen=True)
class TierPolicy:
    enabled: bool
    mode: PolicyMode
    min_confidence: float


TIER_POLICIES: dict[int, TierPolicy] = {
    1: TierPolicy(enabled=False, mode=PolicyMode.DISABLED, min_confidence=0.5),
    2: TierPolicy(enabled=False, mode=PolicyMode.DISABLED, min_confidence=0.5),
    3: TierPolicy(enabled=True, mode=PolicyMode.BLOCK, min_confidence=0.6),
    4: TierPolicy(enabled=True, mode=PolicyMode.WARN, min_confidence=0.5),
    5: TierPolicy(enabled=True, mode=PolicyMode.WARN, min_confidence=0.4),
}

# Checked in this order; the first rule that hits a line names it.
_RULES: list[tuple[str, re.Pattern[str]]] = [
    ("high", re.compile(r"\bplaceholder\b", re.IGNORECASE)),
    ("high", re.compile(r"\bdummy\b", re.IGNORECASE)),
    ("high", re.compile(r"\bmock(ed|ing)?\b", re.IGNORECASE)),
    ("high", re.compile(r"\bdemo\b", re.IGNORECASE)),
    ("high", re.compile(r"\bexample\b", re.IGNORECASE)),
    ("high", re.compile(r"lorem\s+ipsum", re.IGNORECASE)),
    ("medium", re.compile(r"(//|#|<!--)\s*TODO\b", re.IGNORECASE)),
    ("medium", re.compile(r"\bfoo(bar)?\b", re.IGNORECASE)),
    ("medium", re.compile(r"\b\w+\.example\.com\b", re.IGNORECASE)),
    ("medium", re.compile(r"\bmock[A-Z]\w*\(")),
    ("medium", re.compile(r"\bfake[A-Z]\w*\(")),
    ("medium", re.compile(r"\bconsole\.log\(['\"]hello world", re.IGNORECASE)),
    ("medium", re.compile(r"api_?key\s*[:=]\s*['\"](sk_)?demo", re.IGNORECASE)),
    ("low", re.compile(r"\byour\s+code\s+here\b", re.IGNORECASE)),
    ("low", re.compile(r"\bfill\s+in\s+implementation\b", re.IGNORECASE)),
    ("low", re.compile(r"\bstub\b", re.IGNORECASE)),
    ("low", re.compile(r"\bnot\s+implemented\b", re.IGNORECASE)),
]


def scan_for_demo_code(text: str) -> tuple[list[PolicyFinding], float]:
    """Return one finding per offending line and the scan confidence.

    Confidence is 1.0 for a clean scan; otherwise 0.4 plus 0.2 per
    high/medium finding, capped at 1.0.
    """
    findings: list[PolicyFinding] = []
    for number, line in enumerate(text.splitlines(), start=1):
        for severity, pattern in _RULES:
            if pattern.search(line):
                findings.append(PolicyFinding(line=number, text=line, rule=pattern.pattern, severity=severity))
                break

    if not findings:
        return findings, 1.0
    strong = sum(1 for f in findings if f.severity != "low")
    return findings, min(1.0, round(0.4 + 0.2 * strong, 4))


def enforce_no_demo(text: str, tier: int) -> PolicyCheck:
    """Run the no-demo check for ``tier`` over ``text``.

    Raises:
        ValueError: If ``tier`` is outside 1..5.
    """
    policy = TIER_POLICIES.get(tier)
    if policy is None:
        raise ValueError(f"tier must be between 1 and 5, got {tier}")

    if not policy.enabled:
        return PolicyCheck(tier=tier, allowed=True, message="Policy disabled for this tier")

    findings, confidence = scan_for_demo_code(text)
    offending = len(findings)
    check = PolicyCheck(
        tier=tier,
        allowed=True,
        message="Output passed validation",
        offending_lines=offending,
        confidence=confidence,
        findings=findings,
    )
    if offending == 0:
        return check

    if confidence < policy.min_confidence:
        check.message = "Confidence below threshold, allowing output"
        return check

    if policy.mode is PolicyMode.BLOCK:
        check.allowed = False
        check.requires_regeneration = True
        check.message = f"Blocked: {offending} mock/demo line(s) detected. Regeneration required."
    else:
        check.message = f"Warning: {offending} mock/demo line(s) detected."
    return check
