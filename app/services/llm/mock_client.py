from __future__ import annotations

import re
from collections import Counter
from typing import Any

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_NON_ALPHA_RE = re.compile(r"[^a-z]")

_DIFFICULTIES = ["easy", "easy", "easy", "medium", "medium", "medium", "medium", "medium", "hard", "hard"]

_GENERIC_KEY_POINTS = [
    "Understanding the fundamental concepts and definitions",
    "Key principles and how they apply in practice",
    "Real-world applications and use cases",
    "Important terminology and technical vocabulary",
    "Best practices and recommendations",
    "Common challenges and how to overcome them",
    "Future trends and developments in the field",
]


def key_terms(text: str, limit: int = 10) -> list[str]:
    """Words longer than 5 letters that occur at least twice, most frequent first."""
    counts: Counter[str] = Counter()
    for word in (text or "").lower().split():
        cleaned = _NON_ALPHA_RE.sub("", word)
        if len(cleaned) > 5:
            counts[cleaned] += 1
    return [w for w, c in counts.most_common() if c >= 2][:limit]


def _sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_SPLIT_RE.split(text or "") if len(s.strip()) > 20]


def _capitalize(s: str) -> str:
    return s[:1].upper() + s[1:] if s else s


def _place(correct: str, distractors: list[str], position: int) -> list[str]:
    options = list(distractors[:3])
    options.insert(position, correct)
    return options


class MockContentGenerator:
    """
    Deterministic stand-in for a live model, used in demos and tests.

    Content is derived from simple term frequency over the input text; it
    makes no model calls.
    """

    name = "mock"

    def ensure_configured(self) -> None:
        return None

    def generate_summary(self, text: str) -> str:
        words = (text or "").split()
        terms = key_terms(text, limit=5)

        parts = [
            f"This educational content presents {len(words)} words of material, "
            "exploring fundamental principles and practical applications."
        ]
        if terms:
            parts.append("Key terms that recur throughout include " + ", ".join(terms) + ".")

        budget = 220
        used = sum(len(p.split()) for p in parts)
        for sentence in _sentences(text):
            n = len(sentence.split())
            if used + n > budget:
                break
            parts.append(_capitalize(sentence) + ".")
            used += n

        parts.append(
            "The content is structured to make complex ideas accessible, and this summary captures "
            "the main themes and important points covered in the original material."
        )

        summary_words = " ".join(parts).split()
        return " ".join(summary_words[:300])

    def generate_key_points(self, text: str) -> list[dict[str, str]]:
        points = [
            f"Understanding {term} and its role in the material"
            for term in key_terms(text, limit=4)
        ]
        for generic in _GENERIC_KEY_POINTS:
            if len(points) >= 7:
                break
            points.append(generic)
        return [{"point": p, "timestamp": "general"} for p in points]

    def generate_quiz(self, text: str) -> list[dict[str, Any]]:
        sentences = _sentences(text)
        words = (text or "").lower().split()
        terms = key_terms(text, limit=10)

        term1 = terms[0] if terms else "concepts"
        term2 = terms[1] if len(terms) > 1 else "systems"
        term3 = terms[2] if len(terms) > 2 else "processes"
        first = sentences[0] if sentences else "the subject matter"
        middle = sentences[len(sentences) // 2] if sentences else "key information"
        last = sentences[-1] if sentences else "understanding the topic"
        lowered = (text or "").lower()

        drafts = [
            (
                "What is the primary focus of this educational content?",
                _capitalize(first)[:100],
                ["Historical events and chronological developments", "Mathematical calculations and formulas",
                 "Literary analysis and creative writing"],
                "The opening statement establishes the main topic and scope of the content.",
            ),
            (
                "Which term appears most frequently and represents a core concept?",
                _capitalize(term1),
                ["Methodology", "Infrastructure", "Philosophy"],
                f'The term "{term1}" is central to the material and appears throughout the content.',
            ),
            (
                "According to the content, what is emphasized in the middle section?",
                middle[:100],
                ["Theoretical frameworks without practical application", "Historical context only",
                 "Biographical information"],
                "This section provides information that builds upon earlier concepts.",
            ),
            (
                "What type of applications or uses are discussed in this content?",
                "Practical applications and real-world implementations"
                if ("application" in lowered or "use" in lowered)
                else "Fundamental concepts and theoretical foundations",
                ["Purely theoretical models", "Historical documentation", "Personal opinions and anecdotes"],
                "The content discusses both theoretical understanding and practical implementation.",
            ),
            (
                "What secondary concept is explored in relation to the main topic?",
                f"{_capitalize(term2)} and its role in the subject",
                ["Unrelated side topics", "Marketing strategies", "Financial considerations only"],
                f"Understanding {term2} is essential to grasping the complete picture of the subject.",
            ),
            (
                "How does the content structure the learning progression?",
                "From fundamental concepts to advanced applications"
                if len(sentences) > 5
                else "Comprehensive overview of key topics",
                ["Random unconnected facts", "Only advanced concepts for experts", "Historical timeline exclusively"],
                "The content builds understanding progressively from basics to more complex ideas.",
            ),
            (
                "What relationship is highlighted between different concepts?",
                f"The interconnection between {term1} and {term3}",
                ["No relationships are established", "Contradictory viewpoints only", "Independent unrelated topics"],
                "The content shows how the concepts work together and influence each other.",
            ),
            (
                "What conclusion or key takeaway does the content emphasize?",
                _capitalize(last)[:100],
                ["No conclusions are presented", "Contradictory results", "Incomplete analysis"],
                "This represents the culmination of ideas presented throughout the content.",
            ),
            (
                "Why is understanding this topic considered important?",
                "It is essential for modern understanding and application"
                if ("important" in lowered or "essential" in lowered)
                else "It provides foundational knowledge in the field",
                ["It is only useful for historians", "It has no practical relevance",
                 "It is purely for academic discussion"],
                "The content establishes the significance and real-world relevance of the topic.",
            ),
            (
                "What level of depth does this content provide?",
                "Comprehensive coverage with detailed explanations"
                if len(words) > 200
                else "Concise overview of key concepts",
                ["Surface-level introduction only", "Expert-level technical jargon exclusively",
                 "Incomplete and fragmented information"],
                f"With {len(words)} words of content, this gives a sense of the depth of the material.",
            ),
        ]

        questions: list[dict[str, Any]] = []
        for i, (question, correct, distractors, explanation) in enumerate(drafts):
            position = i % 4
            questions.append(
                {
                    "question": question,
                    "options": _place(correct, distractors, position),
                    "correctAnswer": position,
                    "explanation": explanation,
                    "difficulty": _DIFFICULTIES[i],
                }
            )
        return questions
