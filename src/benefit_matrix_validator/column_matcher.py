"""
Column matching: maps a plan benefit name to the best benefit matrix column.
"""

from typing import Dict, List, Optional, Iterable, Mapping, Tuple

from .config import Config
from .logger import get_logger
from .models import ColumnMatch, ColumnDetectionResult
from .rule_loader import PlanFamilyProfile
from .text_utils import fold


def _ordered_columns(columns: Iterable[str]) -> List[str]:
    # Sets have no stable order across runs; sort them so ties resolve the same way every time
    if isinstance(columns, (set, frozenset)):
        return sorted(columns)
    return list(columns)


class ColumnMatcher:
    """Staged matcher: table lookup -> keyword table -> scored fuzzy match -> pattern fallback."""

    def __init__(self, profile: PlanFamilyProfile, synonyms: Mapping[str, Tuple[str, ...]],
                 fuzzy_threshold: float = Config.FUZZY_MATCH_THRESHOLD):
        self.profile = profile
        self.synonyms = synonyms
        self.fuzzy_threshold = fuzzy_threshold
        self.logger = get_logger("benefit_matrix_validator.matcher")

    def match(self, benefit_name: str, columns: Iterable[str]) -> Optional[ColumnMatch]:
        """
        Find the matrix column for a benefit.

        Args:
            benefit_name: Plan benefit display name
            columns: Matrix column headers (iteration order is the tie-break order)

        Returns:
            ColumnMatch, or None when the benefit is unmatched
        """
        ordered = _ordered_columns(columns)
        available = set(ordered)
        name = fold(benefit_name)
        if not name or not ordered:
            return None

        found = (
            self._table_match(name, available)
            or self._fuzzy_match(name, ordered)
            or self._pattern_match(name, ordered)
        )

        if found is None:
            self.logger.debug(f"No column match for benefit '{benefit_name}'")
        else:
            self.logger.debug(
                f"Matched '{benefit_name}' -> '{found.column}' "
                f"({found.strategy}, score {found.score:.2f})"
            )
        return found

    def _table_match(self, name: str, available: set) -> Optional[ColumnMatch]:
        table = self.profile.column_table

        exact = table.get(name)
        if exact is not None and exact in available:
            return ColumnMatch(
                column=exact,
                score=Config.EXACT_TABLE_SCORE,
                strategy="exact",
                reasons=(f"{self.profile.display_name}: exact table entry '{name}'",),
            )

        for keyword, column in table.items():
            if (keyword in name or name in keyword) and column in available:
                return ColumnMatch(
                    column=column,
                    score=Config.KEYWORD_TABLE_SCORE,
                    strategy="keyword",
                    reasons=(f"{self.profile.display_name}: keyword '{keyword}' table entry",),
                )
        return None

    def score(self, benefit_name: str, column: str) -> float:
        """
        Composite similarity between a benefit name and a column header, in [0, 1].

        0.8 for mutual containment, plus 0.4 x the share of significant benefit
        words found in column words, plus 0.3 per matched synonym family.
        """
        name = fold(benefit_name)
        col = fold(column)
        if not name or not col:
            return 0.0

        total = 0.0
        if name in col or col in name:
            total += 0.8

        total += 0.4 * self._word_overlap(name, col)
        total += self._synonym_score(name, col)

        return min(total, 1.0)

    @staticmethod
    def _word_overlap(name: str, col: str) -> float:
        significant = [w for w in name.split() if len(w) > 2]
        if not significant:
            return 0.0
        col_words = [w for w in col.split() if len(w) > 2]
        matched = sum(
            1 for word in significant
            if any(word in cw or cw in word for cw in col_words)
        )
        return matched / len(significant)

    def _synonym_score(self, name: str, col: str) -> float:
        total = 0.0
        for term, variants in self.synonyms.items():
            if term in name and any(v in col for v in variants):
                total += 0.3
        return total

    def _fuzzy_match(self, name: str, ordered: List[str]) -> Optional[ColumnMatch]:
        best_column = None
        best_score = 0.0
        for column in ordered:
            current = self.score(name, column)
            # Strict comparison keeps the first column on ties
            if current > best_score:
                best_score = current
                best_column = column

        if best_column is None or best_score < self.fuzzy_threshold:
            return None

        return ColumnMatch(
            column=best_column,
            score=best_score,
            strategy="fuzzy",
            reasons=self._fuzzy_reasons(best_score),
        )

    def _fuzzy_reasons(self, score: float) -> Tuple[str, ...]:
        family = self.profile.display_name
        if score >= 0.9:
            return (f"{family}: high confidence name match",)
        if score >= 0.7:
            return (f"{family}: strong keyword and synonym overlap",)
        return (f"{family}: partial similarity match",)

    def _pattern_match(self, name: str, ordered: List[str]) -> Optional[ColumnMatch]:
        for column in ordered:
            col = fold(column)
            if col.startswith("inn ") or col.startswith("oon "):
                suffix = col[4:].strip()
                if suffix and (suffix in name or name in suffix):
                    return ColumnMatch(
                        column=column,
                        score=self.score(name, column),
                        strategy="pattern",
                        reasons=(f"{self.profile.display_name}: INN/OON column suffix '{suffix}'",),
                    )
            if len(name) > 3 and name[:4] in col:
                return ColumnMatch(
                    column=column,
                    score=self.score(name, column),
                    strategy="pattern",
                    reasons=(f"{self.profile.display_name}: column contains '{name[:4]}'",),
                )
        return None

    def detect_columns(self, columns: Iterable[str]) -> ColumnDetectionResult:
        """
        Classify every matrix column into a benefit category of this plan family.

        Args:
            columns: Matrix column headers

        Returns:
            ColumnDetectionResult with detected, ambiguous and unmatched columns
        """
        detected: Dict[str, str] = {}
        confidence_scores: Dict[str, float] = {}
        unmatched: List[str] = []
        ambiguous: List[str] = []

        for column in _ordered_columns(columns):
            category, confidence = self._best_category(column)
            if category is not None and confidence >= Config.DETECTED_COLUMN_CONFIDENCE:
                # First column in matrix order wins the category
                detected.setdefault(category, column)
                confidence_scores[column] = confidence
            elif confidence >= Config.AMBIGUOUS_COLUMN_CONFIDENCE:
                ambiguous.append(column)
            else:
                unmatched.append(column)

        self.logger.info(
            f"{self.profile.display_name} column detection - Detected: {len(detected)}, "
            f"Unmatched: {len(unmatched)}, Ambiguous: {len(ambiguous)}"
        )
        return ColumnDetectionResult(
            detected_columns=detected,
            confidence_scores=confidence_scores,
            unmatched=tuple(unmatched),
            ambiguous=tuple(ambiguous),
        )

    def _best_category(self, column: str) -> Tuple[Optional[str], float]:
        best_category = None
        best_score = 0.0
        for category, patterns in self.profile.category_column_patterns.items():
            current = self._category_score(column, patterns)
            if current > best_score:
                best_score = current
                best_category = category
        return best_category, best_score

    def _category_score(self, column: str, patterns: Tuple[str, ...]) -> float:
        col = fold(column)
        for pattern in patterns:
            if fold(pattern) in col:
                return self.profile.category_direct_score

        for pattern in patterns:
            words = fold(pattern).split()
            matching = sum(1 for w in words if w in col)
            if matching > 0:
                return matching / len(words) * self.profile.category_partial_factor
        return 0.0
