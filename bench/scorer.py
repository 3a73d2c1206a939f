"""Heuristic response scorers.

Every scorer here is a keyword / regex / length heuristic, not ground truth.
Executors receive a scorer instance at construction so any of these can be
replaced (for example by an LLM-as-judge) without touching the executor.
"""
import json
import re
from typing import Any, Iterable, List, Sequence

from .question import Question, QuestionCategory, QualitativeMetrics, RealDataMetrics, SmokeMetrics


STOP_WORDS = frozenset([
    'this', 'that', 'with', 'have', 'will', 'from', 'they', 'been', 'their', 'said',
    'each', 'which', 'what', 'were', 'when', 'where', 'more', 'some', 'like', 'into',
    'time', 'very', 'only', 'other', 'pour', 'avec', 'dans', 'plus', 'tout', 'sont',
    'cette', 'être', 'faire', 'leur', 'bien', 'nous', 'vous', 'mais', 'donc',
])

_SENTENCE_SPLIT = re.compile(r'[.!?]+')
_NUMBER = re.compile(r'\d+(?:\.\d+)?')
_PERCENTAGE = re.compile(r'\d+(?:\.\d+)?%')


def extract_keywords(text: str) -> List[str]:
    words = re.sub(r'[^\w\s]', ' ', (text or '').lower()).split()
    return [w for w in words if len(w) > 3 and w not in STOP_WORDS]


def split_sentences(text: str) -> List[str]:
    return [s for s in _SENTENCE_SPLIT.split(text or '') if s.strip()]


def count_repeated_sentences(text: str) -> int:
    seen = set()
    repeats = 0
    for sentence in _SENTENCE_SPLIT.split(text or ''):
        normalized = sentence.strip().lower()
        if len(normalized) > 10:
            if normalized in seen:
                repeats += 1
            seen.add(normalized)
    return repeats


def keyword_coverage(text: str, keywords: Sequence[str]) -> float:
    if not keywords:
        return 0.0
    lowered = (text or '').lower()
    hits = sum(1 for k in keywords if k.lower() in lowered)
    return hits / len(keywords)


def count_matching(patterns: Iterable[re.Pattern], text: str) -> int:
    return sum(1 for p in patterns if p.search(text))


def _ci(*patterns: str) -> List[re.Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


def clamp(value: float, low: float = 0.0, high: float = 10.0) -> float:
    return max(low, min(high, value))


class QualityScorer:
    """Relevance / coherence / accuracy / completeness for a single answer."""

    CONNECTORS = ['donc', 'ainsi', 'par conséquent', 'cependant', 'néanmoins',
                  'furthermore', 'however', 'therefore']
    FACTUAL_ERRORS = [
        re.compile(r'paris.*capital.*spain', re.IGNORECASE),
        re.compile(r'2\s*\+\s*2\s*=\s*5'),
        re.compile(r'sun.*revolves.*earth', re.IGNORECASE),
        re.compile(r'water.*boils.*0.*celsius', re.IGNORECASE),
    ]
    CONTRADICTIONS = [
        (re.compile(r'\b(?:yes|oui|correct)\b', re.IGNORECASE), re.compile(r'\b(?:no|non|incorrect)\b', re.IGNORECASE)),
        (re.compile(r'\b(?:always|toujours)\b', re.IGNORECASE), re.compile(r'\b(?:never|jamais)\b', re.IGNORECASE)),
        (re.compile(r'\b(?:all|tous)\b', re.IGNORECASE), re.compile(r'\b(?:none|aucun)\b', re.IGNORECASE)),
    ]
    FIGURATIVE = _ci(r'like a|as a|comme un|tel qu', r'metaphor|simile|métaphore', r'imagine|imagery|imaginez')
    CLICHES = _ci(r'at the end of the day', r'think outside the box', r'it is what it is',
                  r"c'est la vie", r'comme on dit')
    TECHNICAL_TERMS = _ci(r'algorithm|fonction|variable|parameter',
                          r'implementation|architecture|design pattern',
                          r'database|api|framework|library',
                          r'optimization|performance|scalability')
    EXAMPLE_MARKERS = _ci(r'for example|par exemple', r'such as|comme', r'instance|cas', r'e\.g\.|p\.ex\.')

    def evaluate(self, question: Question, text: str) -> QualitativeMetrics:
        metrics = QualitativeMetrics(
            relevance=self.relevance(question, text),
            coherence=self.coherence(text),
            accuracy=self.accuracy(question, text),
            completeness=self.completeness(question, text),
        )
        if question.category == QuestionCategory.CREATIVE_WRITING:
            metrics.creativity = self.creativity(text)
        if question.category == QuestionCategory.TECHNICAL_ANALYSIS:
            metrics.technical_depth = self.technical_depth(text)
        return metrics

    def composite(self, metrics: QualitativeMetrics) -> float:
        score = (metrics.relevance * 0.30
                 + metrics.coherence * 0.25
                 + metrics.accuracy * 0.25
                 + metrics.completeness * 0.20)
        if metrics.creativity is not None:
            score = score * 0.9 + metrics.creativity * 0.1
        if metrics.technical_depth is not None:
            score = score * 0.9 + metrics.technical_depth * 0.1
        return round(score, 1)

    def appropriate_length(self, question: Question, text: str) -> float:
        ratio = len(text) / (question.expected_answer_length or 200)
        if ratio < 0.3:
            return 1
        if ratio < 0.5:
            return 3
        if ratio < 0.8:
            return 5
        if ratio <= 1.2:
            return 10
        if ratio <= 2.0:
            return 8
        if ratio <= 3.0:
            return 5
        return 2

    def relevance(self, question: Question, text: str) -> float:
        keywords = question.keywords or extract_keywords(question.text)
        keyword_score = keyword_coverage(text, keywords) * 8
        length_score = self.appropriate_length(question, text) / 10 * 2
        return min(10.0, keyword_score + length_score)

    def coherence(self, text: str) -> float:
        if len(split_sentences(text)) < 2:
            return 5.0

        score = 5.0
        if '\n' in text or '-' in text or '1.' in text:
            score += 2

        lowered = text.lower()
        connectors = sum(1 for c in self.CONNECTORS if c in lowered)
        score += min(2.0, connectors * 0.5)

        score -= min(3.0, count_repeated_sentences(text) * 0.5)
        return clamp(score)

    def accuracy(self, question: Question, text: str) -> float:
        if question.baseline_answer:
            return self.compare_with_baseline(text, question.baseline_answer)

        score = 7.0
        score -= count_matching(self.FACTUAL_ERRORS, text) * 2
        score += self.internal_consistency(text)
        return clamp(score)

    def compare_with_baseline(self, text: str, baseline: str) -> float:
        response_words = extract_keywords(text)
        baseline_words = set(extract_keywords(baseline))
        denominator = max(len(response_words), len(baseline_words))
        if denominator == 0:
            return 0.0
        overlap = sum(1 for w in response_words if w in baseline_words)
        return min(10.0, overlap / denominator * 10)

    def internal_consistency(self, text: str) -> float:
        for positive, negative in self.CONTRADICTIONS:
            if positive.search(text) and negative.search(text):
                return -0.5
        return 0.5

    def completeness(self, question: Question, text: str) -> float:
        if question.evaluation_criteria:
            lowered = text.lower()
            covered = [c for c in question.evaluation_criteria if c.lower() in lowered]
            return len(covered) / len(question.evaluation_criteria) * 10

        expected = question.expected_answer_length or 200
        if len(text) < expected * 0.5:
            return 3.0
        if len(text) > expected * 3:
            return 6.0
        return 9.0

    def creativity(self, text: str) -> float:
        words = text.lower().split()
        variety = len(set(words)) / len(words) if words else 0.0
        score = 5.0 + variety * 3
        score += count_matching(self.FIGURATIVE, text) * 0.5
        score += max(0.0, 1 - count_matching(self.CLICHES, text) * 0.3)
        return min(10.0, score)

    def technical_depth(self, text: str) -> float:
        score = 5.0
        score += min(2.0, count_matching(self.TECHNICAL_TERMS, text) * 0.1)
        score += min(2.0, count_matching(self.EXAMPLE_MARKERS, text) * 0.5)
        if '```' in text:
            score += 1
        return min(10.0, score)


class SampleQualityScorer:
    """Per-sample quality used by the parameter sweep."""

    def score(self, question: Question, text: str) -> float:
        quality = 5.0

        ratio = len(text) / (question.expected_answer_length or 200)
        if 0.5 <= ratio <= 2.0:
            quality += 2

        if len(split_sentences(text)) >= 2:
            quality += 1

        if question.keywords:
            quality += keyword_coverage(text, question.keywords) * 2

        return quality


class PromptQualityScorer:
    """Relevance + completeness + clarity on top of a base of 5, capped at 10."""

    CONNECTORS = ['however', 'therefore', 'because', 'since', 'although', 'moreover']

    def score(self, question: Question, text: str) -> float:
        quality = 5.0
        quality += self.relevance(question, text)
        quality += self.completeness(question, text)
        quality += self.clarity(text)
        return min(10.0, quality)

    def relevance(self, question: Question, text: str) -> float:
        if question.keywords:
            return keyword_coverage(text, question.keywords) * 2

        question_words = extract_keywords(question.text)
        if not question_words:
            return 0.0
        response_words = set(extract_keywords(text))
        overlap = sum(1 for w in question_words if w in response_words)
        return min(2.0, overlap / len(question_words) * 2)

    def completeness(self, question: Question, text: str) -> float:
        expected = question.expected_answer_length or 200
        length = len(text)
        if expected * 0.7 <= length <= expected * 2:
            return 2.0
        if expected * 0.5 <= length <= expected * 3:
            return 1.0
        return 0.0

    def clarity(self, text: str) -> float:
        score = 0.0
        if len(split_sentences(text)) >= 2:
            score += 0.5
        lowered = text.lower()
        if any(c in lowered for c in self.CONNECTORS):
            score += 0.5
        score -= count_repeated_sentences(text) * 0.5
        return clamp(score, 0.0, 1.0)


class SmokeChecker:
    """Pass/fail sanity checks for a single fast answer."""

    CANNED_FAILURES = _ci(r'error', r'failed', r'cannot', r'unable', r"sorry.*can't",
                          r"i don't know", r'je ne sais pas')
    ABRUPT_ENDINGS = _ci(r'\.\.\.\s*$', r'\b(?:and|but|or|the|et|mais)\s*$')
    TECHNICAL_ERRORS = _ci(r'404|500|error code', r'\b(?:null|undefined|nan)\b',
                           r'exception|stack trace', r'internal server error',
                           r'connection timed out')
    REFUSALS = _ci(r"i cannot|i can't|je ne peux pas", r'sorry.*cannot|désolé.*ne peux pas',
                   r'against my programming', r'not appropriate', r'pas approprié')
    UNSAFE_TOPICS = _ci(r'how to.*kill|comment.*tuer', r'illegal|illégal', r'hack|pirate',
                        r'bomb|bombe', r'drug|drogue')
    TERMINAL_CHARS = ('.', '!', '?', ':', ')')

    def evaluate(self, question: Question, text: str, elapsed_ms: int,
                 time_limit_ms: int, basic_checks: Sequence[str] = ()) -> SmokeMetrics:
        return SmokeMetrics(
            basic_functionality=self.basic_functionality(text, basic_checks),
            response_completeness=self.response_completeness(question, text),
            no_errors=self.no_errors(question, text),
            within_time_limit=elapsed_ms <= time_limit_ms,
        )

    def basic_functionality(self, text: str, basic_checks: Sequence[str] = ()) -> bool:
        if not text or not text.strip():
            return False
        if len(text.split()) < 3:
            return False
        if count_matching(self.CANNED_FAILURES, text):
            return False
        return all(self.run_check(check, text) for check in basic_checks)

    def run_check(self, check: str, text: str) -> bool:
        lowered = text.lower()
        if check == 'contains_numbers':
            return bool(re.search(r'\d', lowered))
        if check == 'contains_punctuation':
            return bool(re.search(r'[.!?]', lowered))
        if check == 'multiple_sentences':
            return len(split_sentences(lowered)) >= 2
        if check == 'no_repetition':
            return not self.has_excessive_repetition(lowered)
        if check == 'proper_length':
            return 20 <= len(lowered) <= 1000
        return check.lower() in lowered

    def response_completeness(self, question: Question, text: str) -> bool:
        stripped = text.strip()
        if not stripped or not stripped.endswith(self.TERMINAL_CHARS):
            return False
        min_length = min(question.expected_answer_length or 50, 30)
        if len(text) < min_length:
            return False
        return not count_matching(self.ABRUPT_ENDINGS, text)

    def no_errors(self, question: Question, text: str) -> bool:
        if count_matching(self.TECHNICAL_ERRORS, text):
            return False
        if count_matching(self.REFUSALS, text) and self.is_reasonable_question(question.text):
            return False
        return True

    def is_reasonable_question(self, question_text: str) -> bool:
        return not count_matching(self.UNSAFE_TOPICS, question_text)

    @staticmethod
    def has_excessive_repetition(text: str) -> bool:
        words = text.lower().split()
        if words:
            counts = {}
            for word in words:
                if len(word) > 3:
                    counts[word] = counts.get(word, 0) + 1
            if any(c / len(words) > 0.2 for c in counts.values()):
                return True

        sentence_counts = {}
        for sentence in _SENTENCE_SPLIT.split(text):
            normalized = sentence.strip().lower()
            if len(normalized) > 10:
                sentence_counts[normalized] = sentence_counts.get(normalized, 0) + 1
        return any(c > 2 for c in sentence_counts.values())


class RealDataScorer:
    """Grounding heuristics for answers given a real-world context blob."""

    DOMAIN_TERMS = {
        'market_data': ['stock', 'price', 'market', 'trading', 'volume', 'index'],
        'text_corpus': ['news', 'article', 'headline', 'report', 'trend'],
        'social': ['news', 'article', 'headline', 'report', 'trend'],
        'academic': ['research', 'study', 'paper', 'findings', 'analysis'],
    }
    PRACTICAL = ['implement', 'apply', 'use', 'solution', 'approach', 'method',
                 'strategy', 'plan', 'action', 'step', 'process', 'procedure']
    COMPARISONS = ['higher', 'lower', 'increase', 'decrease', 'compared', 'versus']
    TRENDS = ['trend', 'pattern', 'growth', 'decline', 'stable']
    VIABILITY = ['feasible', 'practical', 'realistic', 'achievable', 'viable',
                 'cost', 'budget', 'resource', 'time', 'constraint', 'limitation']
    NUANCE = re.compile(r'\b(?:however|but|although)\b', re.IGNORECASE)
    TEMPORAL = ['time', 'timeline', 'schedule']

    def evaluate(self, text: str, context_type: str, context_data: Any) -> RealDataMetrics:
        serialized = json.dumps(context_data, ensure_ascii=False, default=str)
        return RealDataMetrics(
            relevance_to_context=self.relevance_to_context(text, context_type, serialized),
            practical_applicability=self.practical_applicability(text),
            data_handling_accuracy=self.data_handling(text, serialized),
            real_world_viability=self.real_world_viability(text),
        )

    def composite(self, metrics: RealDataMetrics) -> float:
        score = (metrics.relevance_to_context * 0.30
                 + metrics.practical_applicability * 0.25
                 + metrics.data_handling_accuracy * 0.25
                 + metrics.real_world_viability * 0.20)
        return round(score, 1)

    def relevance_to_context(self, text: str, context_type: str, serialized_context: str) -> float:
        lowered = text.lower()
        score = 5.0

        terms = self.DOMAIN_TERMS.get(context_type)
        if terms:
            score += keyword_coverage(lowered, terms) * 3

        context_lower = serialized_context.lower()
        echoed = sum(1 for number in _NUMBER.findall(text) if number in context_lower)
        score += min(2.0, echoed * 0.5)
        return clamp(score)

    def practical_applicability(self, text: str) -> float:
        lowered = text.lower()
        score = 5.0 + keyword_coverage(lowered, self.PRACTICAL) * 3
        if 'example' in lowered or 'instance' in lowered:
            score += 1
        if 'consider' in lowered or 'keep in mind' in lowered:
            score += 1
        return clamp(score)

    def data_handling(self, text: str, serialized_context: str) -> float:
        lowered = text.lower()
        score = 5.0
        if _NUMBER.search(text):
            score += 2
        if any(w in lowered for w in self.COMPARISONS):
            score += 1
        if any(w in lowered for w in self.TRENDS):
            score += 1

        echoed = sum(1 for p in _PERCENTAGE.findall(serialized_context) if p in text)
        score += min(1.0, echoed * 0.5)
        return clamp(score)

    def real_world_viability(self, text: str) -> float:
        lowered = text.lower()
        score = 5.0 + keyword_coverage(lowered, self.VIABILITY) * 3
        if self.NUANCE.search(text):
            score += 1
        if any(w in lowered for w in self.TEMPORAL):
            score += 1
        return clamp(score)
