"""
Evaluates scheme eligibility criteria against a citizen's context

A criterion whose attribute is absent from the context is reported as
unknown; it is never turned into a pass or a fail. The same holds for a
declared value that cannot be compared with the criterion (wrong type).
Only faults in the scheme's own definition raise ``CriterionError``, and
their messages never carry context values.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from ..exceptions import CriterionError
from ..models.eligibility import CriterionOutcome, CriterionStatus
from ..models.scheme import EligibilityCriteria, NamedPredicate, NumericRange, SchemeRecord
from ..models.session import UserContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Criterion:
    """One flattened condition of a scheme's criteria"""
    label: str
    kind: str  # range, set, match, predicate
    attribute: str
    expected: Any
    op: Optional[str] = None


@dataclass
class SchemeEvaluation:
    eligible: bool
    confidence: float
    outcomes: List[CriterionOutcome] = field(default_factory=list)
    missing_requirements: List[str] = field(default_factory=list)


class Incomparable(Exception):
    """A context value cannot be compared with a criterion; carries only its type"""

    def __init__(self, value: Any):
        self.type_name = type(value).__name__
        super().__init__(self.type_name)


def _fold(value: Any) -> Any:
    return value.casefold() if isinstance(value, str) else value


def _candidates(value: Any) -> List[Any]:
    # A list-valued attribute matches when any member does
    return [_fold(item) for item in value] if isinstance(value, list) else [_fold(value)]


def _number(value: Any, criterion: str) -> float:
    """Numeric value declared by a scheme"""
    if isinstance(value, bool):
        raise CriterionError(f"Expected a number, got boolean {value!r}", criterion)
    try:
        return float(value)
    except (ValueError, TypeError):
        raise CriterionError(f"Expected a number, got {value!r}", criterion)


def _context_number(value: Any) -> float:
    """Numeric value declared by a citizen"""
    if isinstance(value, bool):
        raise Incomparable(value)
    try:
        return float(value)
    except (ValueError, TypeError):
        raise Incomparable(value)


class CriteriaEvaluator:
    """Flattens and evaluates eligibility criteria"""

    def __init__(self, min_confidence: float = 0.0):
        self.min_confidence = min_confidence
        self.operators = {
            '==': self._eq,
            '!=': self._ne,
            '>': self._gt,
            '>=': self._gte,
            '<': self._lt,
            '<=': self._lte,
            'truthy': self._truthy,
            'falsy': self._falsy,
            'in': self._in,
            'not_in': self._not_in,
            'between': self._between
        }

    def expand(self, criteria: EligibilityCriteria) -> List[Criterion]:
        """Flatten criteria into individually evaluable conditions, in a fixed order"""
        flat: List[Criterion] = []
        if criteria.age is not None:
            flat.append(Criterion("age", "range", "age", criteria.age))
        if criteria.income is not None:
            flat.append(Criterion("income", "range", "income", criteria.income))
        if criteria.occupations is not None:
            flat.append(Criterion("occupation", "set", "occupation", list(criteria.occupations)))
        if criteria.states is not None:
            flat.append(Criterion("state", "set", "state", list(criteria.states)))
        if criteria.categories is not None:
            flat.append(Criterion("category", "set", "category", list(criteria.categories)))
        if criteria.gender is not None:
            flat.append(Criterion("gender", "match", "gender", criteria.gender))
        for name in sorted(criteria.predicates):
            predicate: NamedPredicate = criteria.predicates[name]
            flat.append(Criterion(
                f"predicate:{name}", "predicate", predicate.attribute, predicate.value, predicate.op
            ))
        return flat

    def evaluate_criterion(self, criterion: Criterion, context: UserContext) -> CriterionOutcome:
        """
        Evaluate one criterion

        Raises:
            CriterionError: if the criterion itself is malformed
        """
        value = context.get(criterion.attribute)
        expected = criterion.expected
        if isinstance(expected, NumericRange):
            expected = expected.model_dump()

        if value is None:
            return self._unknown(criterion, expected, f"{criterion.attribute} not provided")

        try:
            passed = self._check(criterion, value)
        except Incomparable as e:
            logger.debug(
                f"Criterion {criterion.label}: {criterion.attribute} of type {e.type_name} is not comparable"
            )
            return self._unknown(
                criterion,
                expected,
                f"{criterion.attribute} has a {e.type_name} value that cannot be compared"
            )

        return CriterionOutcome(
            criterion=criterion.label,
            kind=criterion.kind,
            attribute=criterion.attribute,
            status=CriterionStatus.PASSED if passed else CriterionStatus.FAILED,
            expected=expected,
            value_used=value
        )

    def evaluate_scheme(self, record: SchemeRecord, context: UserContext) -> SchemeEvaluation:
        """
        Evaluate every criterion of a scheme

        Eligibility is the AND of the known criteria. Confidence is the share
        of criteria that could be evaluated, floored at ``min_confidence``
        once at least one is known. A scheme with no criteria is eligible
        with full confidence; a scheme whose criteria are all unknown is
        reported ineligible with zero confidence.

        Raises:
            CriterionError: if any criterion of the scheme is malformed
        """
        outcomes = [
            self.evaluate_criterion(criterion, context)
            for criterion in self.expand(record.eligibility)
        ]
        if not outcomes:
            return SchemeEvaluation(eligible=True, confidence=1.0)

        missing: List[str] = []
        for outcome in outcomes:
            if outcome.status == CriterionStatus.UNKNOWN and outcome.attribute not in missing:
                missing.append(outcome.attribute)

        known = [o for o in outcomes if o.status != CriterionStatus.UNKNOWN]
        if not known:
            return SchemeEvaluation(
                eligible=False,
                confidence=0.0,
                outcomes=outcomes,
                missing_requirements=missing
            )

        eligible = all(o.status == CriterionStatus.PASSED for o in known)
        confidence = max(round(len(known) / len(outcomes), 4), self.min_confidence)
        return SchemeEvaluation(
            eligible=eligible,
            confidence=min(confidence, 1.0),
            outcomes=outcomes,
            missing_requirements=missing
        )

    def _unknown(self, criterion: Criterion, expected: Any, note: str) -> CriterionOutcome:
        return CriterionOutcome(
            criterion=criterion.label,
            kind=criterion.kind,
            attribute=criterion.attribute,
            status=CriterionStatus.UNKNOWN,
            expected=expected,
            value_used=None,
            note=note
        )

    def _check(self, criterion: Criterion, value: Any) -> bool:
        if criterion.kind == "range":
            bounds: NumericRange = criterion.expected
            number = _context_number(value)
            if bounds.min is not None and number < bounds.min:
                return False
            if bounds.max is not None and number > bounds.max:
                return False
            return True

        if criterion.kind == "set":
            return self._is_member(value, {_fold(member) for member in criterion.expected})

        if criterion.kind == "match":
            return _fold(criterion.expected) in _candidates(value)

        op_func = self.operators.get(criterion.op)
        if op_func is None:
            raise CriterionError(f"Unknown operator: {criterion.op}", criterion.label)
        return op_func(value, criterion.expected, criterion.label)

    # Operator functions; a is the context value, b the scheme's value
    def _eq(self, a, b, label):
        """Equal operator"""
        return _fold(b) in _candidates(a)

    def _ne(self, a, b, label):
        """Not equal operator"""
        return _fold(b) not in _candidates(a)

    def _gt(self, a, b, label):
        """Greater than operator"""
        limit = _number(b, label)
        return _context_number(a) > limit

    def _gte(self, a, b, label):
        """Greater than or equal operator"""
        limit = _number(b, label)
        return _context_number(a) >= limit

    def _lt(self, a, b, label):
        """Less than operator"""
        limit = _number(b, label)
        return _context_number(a) < limit

    def _lte(self, a, b, label):
        """Less than or equal operator"""
        limit = _number(b, label)
        return _context_number(a) <= limit

    def _truthy(self, a, b, label):
        """Truthy operator"""
        return bool(a)

    def _falsy(self, a, b, label):
        """Falsy operator"""
        return not bool(a)

    def _in(self, a, b, label):
        """In operator"""
        return self._is_member(a, self._members(b, label))

    def _not_in(self, a, b, label):
        """Not in operator"""
        return not self._is_member(a, self._members(b, label))

    def _between(self, a, b, label):
        """Between operator - b is [min, max] or {"min": .., "max": ..}"""
        low, high = self._bounds(b, label)
        return low <= _context_number(a) <= high

    def _is_member(self, value, members: set) -> bool:
        try:
            return any(candidate in members for candidate in _candidates(value))
        except TypeError:
            # Nested lists and other unhashable members
            raise Incomparable(value)

    def _members(self, b, label) -> set:
        if isinstance(b, (list, tuple)):
            try:
                return {_fold(item) for item in b}
            except TypeError:
                raise CriterionError("Membership list must hold plain values", label)
        if isinstance(b, str):
            # Comma-delimited strings
            return {_fold(item.strip()) for item in b.split(",")}
        raise CriterionError(f"Membership value must be a list, got {b!r}", label)

    def _bounds(self, b, label) -> Tuple[float, float]:
        if isinstance(b, dict) and "min" in b and "max" in b:
            low, high = b["min"], b["max"]
        elif isinstance(b, (list, tuple)) and len(b) == 2:
            low, high = b
        else:
            raise CriterionError(f"Invalid 'between' value: {b!r}", label)
        low, high = _number(low, label), _number(high, label)
        if low > high:
            raise CriterionError(f"Invalid 'between' bounds: {low} > {high}", label)
        return low, high
