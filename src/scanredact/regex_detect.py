"""Deterministic regex-based PII detectors.

This module uses the third-party ``regex`` package and returns
:class:`~scanredact.models.Entity` values with a fixed pattern confidence.
Rules that carry a capture group emit only the captured value, so label words
such as ``Account:`` stay readable in the redacted output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

import regex as re

from .models import Entity, Label, RedactionPolicy, RiskLevel

PATTERN_CONFIDENCE = 0.95
CONTEXT_CHARS = 20

_CRITICAL, _HIGH, _MEDIUM, _LOW = (
    RiskLevel.CRITICAL,
    RiskLevel.HIGH,
    RiskLevel.MEDIUM,
    RiskLevel.LOW,
)
_FULL, _PARTIAL, _HASH, _MASK = (
    RedactionPolicy.FULL,
    RedactionPolicy.PARTIAL,
    RedactionPolicy.HASH,
    RedactionPolicy.MASK,
)

# Optional "No." / "Number" / "#" between a keyword and its value.
_NUMBER_WORD = r"(?:[ \t]*(?i:number|num\.?|no\.?|#))?"
# Alphanumeric identifiers must contain at least one digit.
_ALNUM_ID = r"(?=[A-Z0-9-]*\d)[A-Z0-9-]"
_PERSON = r"[A-Z][a-z]+[ \t]+[A-Z][a-z]+"
_STREET_SUFFIX = (
    r"(?i:Street|St|Avenue|Ave|Road|Rd|Drive|Dr|Lane|Ln|Boulevard|Blvd|Circle|Cir"
    r"|Court|Ct|Place|Pl|Square|Sq|Way|Trail|Trl|Terrace|Ter|Parkway|Pkwy)"
)
_MONTH = r"(?i:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?"


def _keyed(keywords: str, value: str) -> str:
    """Keyword (case-insensitive), optional number word, then a captured value."""
    return rf"\b(?i:{keywords}){_NUMBER_WORD}[ \t#:]*({value})\b"


def _keyed_name(keywords: str) -> str:
    return rf"(?<![A-Za-z])(?i:{keywords})[ \t:]*({_PERSON})\b"


@dataclass(frozen=True)
class PatternRule:
    """A named pattern with static risk and redaction policy."""

    label: Label
    pattern: "re.Pattern[str]"
    risk_level: RiskLevel
    redaction_policy: RedactionPolicy


def _rule(
    label: Label,
    pattern: str,
    risk: RiskLevel,
    policy: RedactionPolicy,
    flags: int = 0,
) -> PatternRule:
    return PatternRule(label, re.compile(pattern, flags), risk, policy)


PATTERN_RULES: List[PatternRule] = [
    # Critical identifiers
    _rule(Label.SSN, r"\b(\d{3}[-. ]?\d{2}[-. ]?\d{4})\b", _CRITICAL, _FULL),
    _rule(
        Label.CREDIT_CARD,
        r"\b(\d{4}[- ]?\d{4}[- ]?\d{4}[- ]?\d{4})\b",
        _CRITICAL,
        _FULL,
    ),
    _rule(Label.ACCOUNT_NUMBER, _keyed(r"Account|Acct", r"\d{8,17}"), _CRITICAL, _FULL),
    _rule(
        Label.BANK_ACCOUNT,
        _keyed(r"Bank[ \t]+Account|Bank", r"\d{10,17}"),
        _CRITICAL,
        _FULL,
    ),
    _rule(Label.ROUTING_NUMBER, _keyed(r"Routing|ABA|RTN", r"\d{9}"), _CRITICAL, _FULL),
    _rule(Label.TAX_ID, _keyed(r"Tax[ \t]+ID|EIN|TIN", r"\d{2}-?\d{7}"), _CRITICAL, _FULL),
    _rule(Label.PASSPORT, _keyed(r"Passport", r"[A-Z]\d{8}"), _CRITICAL, _FULL),
    _rule(
        Label.DATE_OF_BIRTH,
        _keyed(r"Date[ \t]+of[ \t]+Birth|DOB", r"\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}"),
        _CRITICAL,
        _FULL,
    ),
    # Contact details
    _rule(
        Label.EMAIL,
        r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b",
        _HIGH,
        _HASH,
    ),
    _rule(
        Label.PHONE,
        r"(?<!\d)(?:\+1[-. ]?\d{3}[-. ]?\d{3}[-. ]?\d{4}"
        r"|\(\d{3}\)[ ]?\d{3}[-. ]?\d{4}"
        r"|1[-. ]?\d{3}[-. ]?\d{3}[-. ]?\d{4}"
        r"|\d{3}[-. ]?\d{3}[-. ]?\d{4})(?!\d)",
        _HIGH,
        _MASK,
    ),
    _rule(
        Label.ADDRESS,
        rf"\b(\d{{1,6}}[ \t]+[A-Za-z][A-Za-z0-9 \t.]*?[ \t]{_STREET_SUFFIX})\b",
        _HIGH,
        _PARTIAL,
    ),
    # A keyed name, or a two-word name alone on its own line.
    _rule(
        Label.NAME,
        _keyed_name(r"Bill[ \t]+To|Ship[ \t]+To|Name") + rf"|^[ \t]*({_PERSON})[ \t]*$",
        _HIGH,
        _MASK,
        re.MULTILINE,
    ),
    # Capitalized word pairs or triples; a trailing colon marks a field label.
    _rule(
        Label.PERSON_NAME,
        rf"(?<![A-Za-z])((?>{_PERSON}(?:[ \t]+[A-Z][a-z]+)?))\b(?![ \t]*:)",
        _HIGH,
        _MASK,
    ),
    _rule(
        Label.SIGNATURE,
        r"\b(?i:Signature|Signed[ \t]+by|Signed)[ \t:]*([A-Za-z][A-Za-z .'-]{2,29})\b",
        _HIGH,
        _FULL,
    ),
    # Financial document identifiers
    _rule(
        Label.TRANSACTION_ID,
        _keyed(r"Transaction|Trans|TXN", _ALNUM_ID + r"{8,25}"),
        _HIGH,
        _FULL,
    ),
    _rule(Label.LOAN_NUMBER, _keyed(r"Loan", _ALNUM_ID + r"{8,20}"), _HIGH, _FULL),
    _rule(Label.POLICY_NUMBER, _keyed(r"Policy", _ALNUM_ID + r"{8,20}"), _HIGH, _FULL),
    _rule(
        Label.CUSTOMER_ID,
        _keyed(r"Customer|Cust|ID", _ALNUM_ID + r"{6,15}"),
        _HIGH,
        _FULL,
    ),
    _rule(
        Label.DRIVERS_LICENSE,
        _keyed(r"Driver'?s[ \t]+License|License|DL", r"(?=[A-Z]*\d)[A-Z0-9]{6,12}"),
        _HIGH,
        _FULL,
    ),
    _rule(
        Label.INVOICE_NUMBER,
        _keyed(r"Invoice|INV", _ALNUM_ID + r"{6,20}"),
        _MEDIUM,
        _PARTIAL,
    ),
    _rule(
        Label.REFERENCE_NUMBER,
        _keyed(r"Reference|Ref", _ALNUM_ID + r"{6,20}"),
        _MEDIUM,
        _PARTIAL,
    ),
    _rule(Label.P_O_NUMBER, _keyed(r"P\.O\.|PO", r"\d{4,12}"), _MEDIUM, _PARTIAL),
    _rule(
        Label.COMPANY_NAME,
        r"\b([A-Z][a-z]+[ \t]+(?:Inc|Corp|LLC|Ltd|Company|Co)\b\.?)",
        _MEDIUM,
        _PARTIAL,
    ),
    # Amounts and dates
    _rule(
        Label.MONETARY_AMOUNT,
        r"\$\d[\d,]*(?:\.\d+)?|\b\d+(?:[,.]\d+)*[ \t]*(?i:USD|dollars?|cents?)\b",
        _MEDIUM,
        _MASK,
    ),
    _rule(
        Label.DATE,
        r"\b(?:\d{1,2}[-/]\d{1,2}[-/]\d{2,4}|\d{4}[-/]\d{1,2}[-/]\d{1,2}"
        rf"|{_MONTH}[ \t]+\d{{1,2}},?[ \t]+\d{{4}})\b",
        _MEDIUM,
        _MASK,
    ),
    # Legal case information
    _rule(Label.CASE_NUMBER, _keyed(r"Case", _ALNUM_ID + r"{6,20}"), _MEDIUM, _PARTIAL),
    _rule(
        Label.DOCKET_NUMBER,
        _keyed(r"Docket|Dkt", _ALNUM_ID + r"{6,20}"),
        _MEDIUM,
        _PARTIAL,
    ),
    _rule(Label.JUDGE_NAME, _keyed_name(r"Judge|Hon\.|Honorable"), _MEDIUM, _PARTIAL),
    _rule(Label.ATTORNEY_NAME, _keyed_name(r"Attorney|Counsel|Lawyer"), _MEDIUM, _PARTIAL),
    _rule(Label.COURT_CLERK, _keyed_name(r"Court[ \t]+Clerk|Clerk"), _MEDIUM, _PARTIAL),
    _rule(
        Label.COURT_NAME,
        r"\b((?i:Court[ \t]+of|(?:Superior|District|Circuit|Supreme)[ \t]+Court)"
        r"(?:[ \t:]+(?:(?:of|the|for)[ \t]+)*[A-Z][A-Za-z]*)*)",
        _LOW,
        _PARTIAL,
    ),
    _rule(Label.WITNESS_NAME, _keyed_name(r"Witness|Testifying"), _HIGH, _MASK),
    _rule(Label.PLAINTIFF_NAME, _keyed_name(r"Plaintiff|Petitioner"), _HIGH, _MASK),
    _rule(Label.DEFENDANT_NAME, _keyed_name(r"Defendant|Respondent"), _HIGH, _MASK),
    _rule(Label.EXPERT_WITNESS, _keyed_name(r"Expert|Dr\.|Doctor"), _HIGH, _MASK),
    _rule(Label.VICTIM_NAME, _keyed_name(r"Victim|Complainant"), _CRITICAL, _FULL),
    _rule(Label.MINOR_NAME, _keyed_name(r"Minor|Child|Juvenile"), _CRITICAL, _FULL),
]


def _value_group(m: "re.Match[str]") -> int:
    """Index of the first participating capture group, or 0 for the full match."""
    for idx in range(1, (m.re.groups or 0) + 1):
        if m.start(idx) != -1:
            return idx
    return 0


def detect_patterns(
    text: str, rules: Iterable[PatternRule] = PATTERN_RULES
) -> List[Entity]:
    """Find PII-like spans using the pattern table.

    Parameters
    ----------
    text:
        Input text to scan.
    rules:
        Pattern table; defaults to :data:`PATTERN_RULES`.

    Returns
    -------
    list[Entity]
        One entity per match, in rule order then match order, each with
        ``confidence = 0.95`` and the rule's risk level and policy.
    """
    out: List[Entity] = []
    for rule in rules:
        for m in rule.pattern.finditer(text):
            g = _value_group(m)
            start, end = m.start(g), m.end(g)
            if start >= end:
                continue
            out.append(
                Entity(
                    text=text[start:end],
                    label=rule.label,
                    confidence=PATTERN_CONFIDENCE,
                    start=start,
                    end=end,
                    risk_level=rule.risk_level,
                    redaction_policy=rule.redaction_policy,
                    context=text[max(0, start - CONTEXT_CHARS) : end + CONTEXT_CHARS],
                    source="PATTERN",
                )
            )
    return out


__all__ = ["PatternRule", "PATTERN_RULES", "PATTERN_CONFIDENCE", "detect_patterns"]
