import json
from dataclasses import dataclass
from typing import Any, List, Sequence

from .question import Question, QuestionCategory


@dataclass(frozen=True)
class PromptVariant:
    type: str
    prompt: str


class PromptBuilder:
    AUTOMATIC_TEMPLATES = [
        ('direct', "Please answer directly: {question}", None),
        ('detailed', "Please provide a detailed explanation for the following question. "
                     "Include your reasoning process and consider multiple perspectives: {question}", None),
        ('step_by_step', "Let's approach this step by step. {question}\n\n"
                         "Please break down your answer into clear steps.", None),
        ('constrained', "{question}\n\n"
                        "Please provide a concise answer in 2-3 sentences, focusing on the most important points.", None),
        ('creative', "Use your imagination and creativity to answer: {question}\n\n"
                     "Feel free to be original and think outside the box.",
         (QuestionCategory.CREATIVE_WRITING,)),
        ('analytical', "Analyze the following question systematically: {question}\n\n"
                       "Provide a logical, well-structured analysis with supporting evidence.",
         (QuestionCategory.TECHNICAL_ANALYSIS, QuestionCategory.MATH_PROBLEM)),
        ('conversational', "I'd like to discuss this question with you: {question}\n\n"
                           "What are your thoughts on this?", None),
        ('contextual', "Context: You are an expert assistant helping to answer this question.\n\n"
                       "Question: {question}\n\nPlease provide your expert response.", None),
    ]

    REAL_DATA_TEMPLATE = """Context: here is recent real-world data from {source} ({type}):
{context}

Question: {question}

Please answer using the real data above. Your answer should be grounded in these facts and show a practical understanding of the context."""

    TRUNCATION_MARKER = '\n... [data truncated]'

    @classmethod
    def variants(cls, question: Question, templates: Sequence[str] = ()) -> List[PromptVariant]:
        """The original prompt first, then configured templates or the automatic rewrites."""
        variants = [PromptVariant('original', question.text)]
        if templates:
            variants.extend(PromptVariant('custom', t.replace('{question}', question.text)) for t in templates)
            return variants

        for variant_type, template, categories in cls.AUTOMATIC_TEMPLATES:
            if categories is None or question.category in categories:
                variants.append(PromptVariant(variant_type, template.format(question=question.text)))
        return variants

    @classmethod
    def serialize_context(cls, data: Any, max_length: int) -> str:
        try:
            text = json.dumps(data, indent=2, ensure_ascii=False)
        except (TypeError, ValueError):
            return str(data)[:max_length]
        if len(text) <= max_length:
            return text
        return text[:max(0, max_length - 50)] + cls.TRUNCATION_MARKER

    @classmethod
    def real_data_prompt(cls, question: Question, source: str, context_type: str,
                         data: Any, max_length: int) -> str:
        return cls.REAL_DATA_TEMPLATE.format(
            source=source,
            type=context_type,
            context=cls.serialize_context(data, max_length),
            question=question.text,
        )
