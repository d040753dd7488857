"""Category taxonomy and the declarative rule set used to classify statement rows.

Rules are data: an ordered list of (regex -> outcome) entries that the
converter walks top to bottom. The built-in set targets QuickBooks-style
small-business P&L exports; trade-specific vocabularies are added by
loading a replacement RuleSet from JSON rather than by editing code.
"""

from __future__ import annotations

import re
from enum import StrEnum
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field

RULE_SET_VERSION = "2025.1"

_ACCOUNT_CODE = re.compile(r"^\d{4}(?:\.\d+)?\s+")
_WHITESPACE = re.compile(r"\s+")


class LineItemCategory(StrEnum):
    REVENUE = "REVENUE"
    COGS = "COGS"
    OPEX = "OPEX"
    D_AND_A = "D_AND_A"
    INTEREST = "INTEREST"
    TAX = "TAX"
    OTHER_INCOME = "OTHER_INCOME"
    OTHER_EXPENSE = "OTHER_EXPENSE"
    NET_INCOME = "NET_INCOME"
    UNCATEGORIZED = "UNCATEGORIZED"


class AddBackCategory(StrEnum):
    OWNER_COMPENSATION = "OWNER_COMPENSATION"
    PERSONAL_EXPENSES = "PERSONAL_EXPENSES"
    ONE_TIME_COSTS = "ONE_TIME_COSTS"
    DISCRETIONARY = "DISCRETIONARY"
    RELATED_PARTY = "RELATED_PARTY"
    NON_CASH = "NON_CASH"
    OTHER = "OTHER"


class Section(StrEnum):
    UNKNOWN = "UNKNOWN"
    INCOME = "INCOME"
    COGS = "COGS"
    EXPENSE = "EXPENSE"
    OTHER_INCOME = "OTHER_INCOME"
    OTHER_EXPENSE = "OTHER_EXPENSE"
    ADD_BACKS = "ADD_BACKS"


class SummaryField(StrEnum):
    """PeriodSummary fields that accept a manual override."""

    TOTAL_REVENUE = "total_revenue"
    TOTAL_COGS = "total_cogs"
    GROSS_PROFIT = "gross_profit"
    TOTAL_OPEX = "total_opex"
    EBITDA = "ebitda"
    ADJUSTED_EBITDA = "adjusted_ebitda"
    EBIT = "ebit"
    NET_INCOME = "net_income"

    @property
    def override_name(self) -> str:
        return f"override_{self.value}"


# Categories summed into total_opex
OPEX_CATEGORIES = frozenset({LineItemCategory.OPEX})


def normalize_label(label: str) -> str:
    """Lower-case, strip a leading account code and collapse whitespace."""
    text = _WHITESPACE.sub(" ", label.strip().lower())
    return _ACCOUNT_CODE.sub("", text).rstrip(":").strip()


@lru_cache(maxsize=512)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


class SectionRule(BaseModel):
    pattern: str
    section: Section

    model_config = {"frozen": True}


class CategoryRule(BaseModel):
    """Maps a label pattern to a line-item category within the listed sections."""

    pattern: str
    category: LineItemCategory
    subcategory: str | None = None
    sections: tuple[Section, ...] = ()  # empty = any section
    exclude: str | None = None

    model_config = {"frozen": True}

    def matches(self, label: str, section: Section) -> bool:
        if self.sections and section not in self.sections:
            return False
        if self.exclude and _compile(self.exclude).search(label):
            return False
        return _compile(self.pattern).search(label) is not None


class AddBackRule(BaseModel):
    pattern: str
    category: AddBackCategory
    include_in_ebitda: bool = True
    include_in_sde: bool = True
    confidence: float = Field(default=1.0, ge=0, le=1)

    model_config = {"frozen": True}

    def match_confidence(self, label: str) -> float | None:
        """Return the confidence of a match on label, or None if it does not match.

        A match covering the whole label earns the rule's full confidence;
        partial matches are scaled by how much of the label they cover.
        """
        m = _compile(self.pattern).search(label)
        if m is None:
            return None
        if not label or m.end() - m.start() >= len(label):
            return self.confidence
        coverage = (m.end() - m.start()) / len(label)
        return round(min(self.confidence, 0.5 + 0.4 * coverage), 2)


class OverrideRule(BaseModel):
    """Maps a Total/summary row to the summary field it states."""

    pattern: str
    field: SummaryField
    net_of: tuple[LineItemCategory, ...] = ()  # same-section items the source total includes
    skip_in_add_backs: bool = False

    model_config = {"frozen": True}


class CategoryMatch(BaseModel):
    category: LineItemCategory
    subcategory: str | None = None
    rule: CategoryRule | None = None  # None when the section default applied


class RuleSet(BaseModel):
    """Versioned, ordered classification rules. First match wins in every list."""

    version: str = RULE_SET_VERSION
    sections: tuple[SectionRule, ...] = ()
    umbrella: tuple[str, ...] = ()
    derived: tuple[str, ...] = ()
    categories: tuple[CategoryRule, ...] = ()
    section_defaults: dict[Section, LineItemCategory] = Field(default_factory=dict)
    add_backs: tuple[AddBackRule, ...] = ()
    add_back_candidates: tuple[AddBackRule, ...] = ()
    add_back_skip: tuple[str, ...] = ()
    overrides: tuple[OverrideRule, ...] = ()

    model_config = {"frozen": True}

    def match_section(self, label: str) -> Section | None:
        text = normalize_label(label)
        for rule in self.sections:
            if _compile(rule.pattern).search(text):
                return rule.section
        return None

    def is_umbrella(self, label: str) -> bool:
        text = normalize_label(label)
        return any(_compile(p).search(text) for p in self.umbrella)

    def is_derived(self, label: str) -> bool:
        text = normalize_label(label)
        return any(_compile(p).search(text) for p in self.derived)

    def is_add_back_skip(self, label: str) -> bool:
        text = normalize_label(label)
        return any(_compile(p).search(text) for p in self.add_back_skip)

    def classify(self, label: str, section: Section) -> CategoryMatch | None:
        """Classify a P&L row. Returns None when neither a rule nor the section decides."""
        text = normalize_label(label)
        for rule in self.categories:
            if rule.matches(text, section):
                return CategoryMatch(category=rule.category, subcategory=rule.subcategory, rule=rule)
        default = self.section_defaults.get(section)
        if default is not None:
            return CategoryMatch(category=default)
        return None

    def match_add_back(self, label: str) -> tuple[AddBackRule | None, float]:
        """Match a row inside an explicit add-back section. Unmatched rows fall to OTHER."""
        text = normalize_label(label)
        for rule in self.add_backs:
            if _compile(rule.pattern).search(text):
                return rule, 1.0
        return None, 1.0

    def match_candidate(self, label: str) -> tuple[AddBackRule, float] | None:
        """Match a P&L row against known add-back patterns."""
        text = normalize_label(label)
        for rule in self.add_back_candidates:
            confidence = rule.match_confidence(text)
            if confidence is not None:
                return rule, confidence
        return None

    def match_override(self, label: str) -> OverrideRule | None:
        text = normalize_label(label)
        for rule in self.overrides:
            if _compile(rule.pattern).search(text):
                return rule
        return None


_ANY_EXPENSE = (Section.EXPENSE, Section.UNKNOWN)
_BELOW_THE_LINE = (Section.COGS, Section.EXPENSE, Section.OTHER_EXPENSE, Section.UNKNOWN)
_NON_OPERATING = (Section.OTHER_INCOME, Section.OTHER_EXPENSE, Section.UNKNOWN)


def _opex(pattern: str, subcategory: str, exclude: str | None = None) -> CategoryRule:
    return CategoryRule(
        pattern=pattern,
        category=LineItemCategory.OPEX,
        subcategory=subcategory,
        sections=_ANY_EXPENSE,
        exclude=exclude,
    )


def _cogs(pattern: str, subcategory: str) -> CategoryRule:
    return CategoryRule(
        pattern=pattern,
        category=LineItemCategory.COGS,
        subcategory=subcategory,
        sections=(Section.COGS,),
    )


@lru_cache(maxsize=1)
def default_rule_set() -> RuleSet:
    """Built-in rules for QuickBooks-style trades and services P&L exports."""
    return RuleSet(
        sections=(
            SectionRule(
                pattern=r"^(add[- ]?backs?|adjustments|owner adjustments|add[- ]?backs? to ebitda)$",
                section=Section.ADD_BACKS,
            ),
            SectionRule(pattern=r"^(income|revenues?|sales)$", section=Section.INCOME),
            SectionRule(
                pattern=r"^(cost of goods sold|cogs|cost of sales|cost of revenue|direct costs)$",
                section=Section.COGS,
            ),
            SectionRule(
                pattern=r"^(expenses?|operating expenses|general (&|and) administrative)$",
                section=Section.EXPENSE,
            ),
            SectionRule(pattern=r"^other (income|revenue)$", section=Section.OTHER_INCOME),
            SectionRule(pattern=r"^other expenses?$", section=Section.OTHER_EXPENSE),
        ),
        umbrella=(
            r"^(ordinary income/expense|other income/expense)$",
            r"^net (other|ordinary|operating) income$",
        ),
        derived=(
            r"^(adjusted|recast(ed)?) ebitda$",
            r"^ebitda$",
            r"^(sde|seller'?s discretionary earnings)$",
            r"margin$",
        ),
        categories=(
            CategoryRule(
                pattern=r"depreciation|amortization|depletion",
                category=LineItemCategory.D_AND_A,
                sections=_BELOW_THE_LINE,
            ),
            CategoryRule(
                pattern=r"interest (paid|expense)|^interest$|loan interest",
                category=LineItemCategory.INTEREST,
                sections=(Section.EXPENSE, Section.OTHER_EXPENSE, Section.UNKNOWN),
            ),
            CategoryRule(
                pattern=(
                    r"^(income )?tax(es)? (expense|provision)|provision for income tax"
                    r"|^(federal |state )?income tax(es)?$"
                ),
                category=LineItemCategory.TAX,
                sections=(Section.EXPENSE, Section.OTHER_EXPENSE, Section.UNKNOWN),
                exclude=r"payroll|other",
            ),
            _cogs(r"subcontract|^subs$", "SUBCONTRACTORS"),
            _cogs(r"material|suppl", "MATERIALS"),
            _cogs(r"labou?r", "LABOR"),
            _cogs(r"equipment|tools", "EQUIPMENT"),
            _cogs(r"permit|licens", "PERMITS"),
            _opex(r"(officer|owner)s?'? ?(comp|salar|wage|draw|pay)", "OWNER_COMP"),
            _opex(r"payroll tax", "PAYROLL_TAXES"),
            _opex(r"health insurance|employee benefit|401\(?k", "BENEFITS"),
            _opex(r"payroll|salar|wages", "PAYROLL"),
            _opex(r"insurance", "INSURANCE"),
            _opex(r"\brent\b|lease", "RENT"),
            _opex(r"utilit", "UTILITIES"),
            _opex(r"advertis|marketing", "MARKETING"),
            _opex(r"legal|accounting|professional", "PROFESSIONAL_FEES"),
            _opex(r"\bauto|vehicle|truck|fuel|gasoline", "VEHICLES"),
            _opex(r"office", "OFFICE"),
            _opex(r"repair|maintenance", "REPAIRS"),
            _opex(r"travel", "TRAVEL"),
            _opex(r"meal|entertainment", "MEALS"),
            _opex(r"tele ?phone|\bphone|internet|telecom", "TELECOM"),
            _opex(r"software|subscription", "SOFTWARE"),
            _opex(r"management fee", "MANAGEMENT_FEES"),
            _opex(r"bad debt", "BAD_DEBT"),
            CategoryRule(
                pattern=r"interest income",
                category=LineItemCategory.OTHER_INCOME,
                subcategory="INTEREST",
                sections=_NON_OPERATING,
            ),
            CategoryRule(
                pattern=r"gain on (sale|disposal)",
                category=LineItemCategory.OTHER_INCOME,
                subcategory="GAIN_ON_SALE",
                sections=_NON_OPERATING,
            ),
            CategoryRule(
                pattern=r"loss on (sale|disposal)",
                category=LineItemCategory.OTHER_EXPENSE,
                subcategory="LOSS_ON_SALE",
                sections=_NON_OPERATING,
            ),
            # Canonical labels for rows that appear outside any section
            CategoryRule(
                pattern=r"^(total )?(gross |net )?(revenues?|sales)$|revenue$|service income|fee income",
                category=LineItemCategory.REVENUE,
                sections=(Section.UNKNOWN,),
            ),
            CategoryRule(
                pattern=r"^(total )?(cost of (goods sold|sales|revenue)|cogs|direct costs?)$",
                category=LineItemCategory.COGS,
                sections=(Section.UNKNOWN,),
            ),
            CategoryRule(
                pattern=r"^other income$|miscellaneous income",
                category=LineItemCategory.OTHER_INCOME,
                sections=(Section.UNKNOWN,),
            ),
            CategoryRule(
                pattern=r"^other expenses?$",
                category=LineItemCategory.OTHER_EXPENSE,
                sections=(Section.UNKNOWN,),
            ),
        ),
        section_defaults={
            Section.INCOME: LineItemCategory.REVENUE,
            Section.COGS: LineItemCategory.COGS,
            Section.EXPENSE: LineItemCategory.OPEX,
            Section.OTHER_INCOME: LineItemCategory.OTHER_INCOME,
            Section.OTHER_EXPENSE: LineItemCategory.OTHER_EXPENSE,
        },
        add_backs=(
            AddBackRule(
                pattern=r"(officer|owner).*(salar|comp|wage|pay)|family.*salar|salaries.*wages",
                category=AddBackCategory.OWNER_COMPENSATION,
                include_in_ebitda=False,
            ),
            AddBackRule(
                pattern=r"officer.*life.*insurance|owner.*(health|life)",
                category=AddBackCategory.PERSONAL_EXPENSES,
            ),
            # Below-EBITDA items: recorded, but already outside EBITDA and SDE
            AddBackRule(
                pattern=r"depreciation|amortization",
                category=AddBackCategory.NON_CASH,
                include_in_ebitda=False,
                include_in_sde=False,
            ),
            AddBackRule(
                pattern=r"interest (paid|expense|income)",
                category=AddBackCategory.OTHER,
                include_in_ebitda=False,
                include_in_sde=False,
            ),
            AddBackRule(
                pattern=r"gain.*loss|(gain|loss) on (sale|disposal)",
                category=AddBackCategory.ONE_TIME_COSTS,
                include_in_ebitda=False,
                include_in_sde=False,
            ),
            AddBackRule(
                pattern=r"travel|meals|vehicle|\bauto|(cogs|cost.*goods).*adjust",
                category=AddBackCategory.PERSONAL_EXPENSES,
            ),
            AddBackRule(
                pattern=r"rent.*adjust|related party", category=AddBackCategory.RELATED_PARTY
            ),
            AddBackRule(
                pattern=r"\berc\b|\bppp\b|\beidl\b|one[- ]time|non[- ]recurring|settlement",
                category=AddBackCategory.ONE_TIME_COSTS,
            ),
            AddBackRule(pattern=r"donation|charit", category=AddBackCategory.DISCRETIONARY),
        ),
        add_back_candidates=(
            AddBackRule(
                pattern=r"(officer|owner)s?'? ?(comp|salar|wage|draw|pay)\w*",
                category=AddBackCategory.OWNER_COMPENSATION,
                include_in_ebitda=False,
                confidence=0.9,
            ),
            AddBackRule(
                pattern=r"officers?'? life insurance",
                category=AddBackCategory.PERSONAL_EXPENSES,
                confidence=0.8,
            ),
            AddBackRule(
                pattern=r"(personal|owner'?s?) (vehicle|auto)\w*",
                category=AddBackCategory.PERSONAL_EXPENSES,
                confidence=0.7,
            ),
            AddBackRule(
                pattern=r"(one[- ]time|non[- ]recurring) [\w ]+|settlement|lawsuit|litigation",
                category=AddBackCategory.ONE_TIME_COSTS,
                confidence=0.6,
            ),
            AddBackRule(
                pattern=r"charitable (donation|contribution)s?|donations?",
                category=AddBackCategory.DISCRETIONARY,
                confidence=0.6,
            ),
        ),
        add_back_skip=(
            r"add[- ]?backs? total|total add[- ]?backs?",
            r"^sde$",
            r"(adjusted|recast(ed)?) ebitda",
            r"salary adjust",
        ),
        overrides=(
            OverrideRule(
                pattern=r"^total (income|revenues?|sales|net sales)$",
                field=SummaryField.TOTAL_REVENUE,
            ),
            OverrideRule(
                pattern=r"^total (cogs|cost of goods sold|cost of sales|cost of revenue|direct costs)$",
                field=SummaryField.TOTAL_COGS,
            ),
            OverrideRule(pattern=r"^gross profit$", field=SummaryField.GROSS_PROFIT),
            OverrideRule(
                pattern=r"^total (expenses?|operating expenses)$",
                field=SummaryField.TOTAL_OPEX,
                net_of=(
                    LineItemCategory.D_AND_A,
                    LineItemCategory.INTEREST,
                    LineItemCategory.TAX,
                ),
            ),
            OverrideRule(
                pattern=r"^net income$", field=SummaryField.NET_INCOME, skip_in_add_backs=True
            ),
        ),
    )


def load_rule_set(path: Path | str) -> RuleSet:
    """Load a replacement rule set from a JSON file."""
    return RuleSet.model_validate_json(Path(path).read_text(encoding="utf-8"))


def get_rule_set() -> RuleSet:
    """Return the configured rule set: RECAST_RULES_PATH if set, else the built-in one."""
    from .config import get_settings

    path = get_settings().rules_path
    if path is not None:
        return load_rule_set(path)
    return default_rule_set()
