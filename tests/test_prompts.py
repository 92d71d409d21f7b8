"""Tests for prompt building and fallback questions."""

from prepai.fallback import QUESTION_TEMPLATES, fallback_questions
from prepai.prompts import build_explanation_prompt, build_question_prompt
from prepai.schemas import Difficulty


class TestQuestionPrompt:
    """Test the question-generation prompt."""

    def test_embeds_inputs(self):
        """Test that role, experience, topics and count appear in the prompt."""
        prompt = build_question_prompt("Backend Engineer", "3", "Node.js, SQL", 5)

        assert "Backend Engineer position" in prompt
        assert "Candidate Experience: 3 years" in prompt
        assert "Focus Topics: Node.js, SQL" in prompt
        assert "Number of Questions: 5" in prompt
        assert "EXACTLY 5 questions" in prompt

    def test_pure(self):
        """Test that identical inputs give identical prompts."""
        first = build_question_prompt("SRE", "5", "Kubernetes", 3)
        second = build_question_prompt("SRE", "5", "Kubernetes", 3)
        assert first == second

    def test_inputs_embedded_verbatim(self):
        """Braces and quotes in user input are not interpreted."""
        prompt = build_question_prompt("{role}", "1", 'say "hi" {0}', 2)
        assert "{role} position" in prompt
        assert 'say "hi" {0}' in prompt


class TestExplanationPrompt:
    """Test the explanation prompt."""

    def test_defaults(self):
        prompt = build_explanation_prompt("JavaScript closures")

        assert '"JavaScript closures"' in prompt
        assert "intermediate audience" in prompt
        assert "writing in English" in prompt
        assert "Additional context" not in prompt

    def test_difficulty_language_and_context(self):
        prompt = build_explanation_prompt(
            "Event loop",
            difficulty=Difficulty.ADVANCED,
            language="Spanish",
            context="Preparing for a Node.js interview",
        )

        assert "advanced audience" in prompt
        assert "writing in Spanish" in prompt
        assert "Preparing for a Node.js interview" in prompt

    def test_accepts_plain_string_difficulty(self):
        prompt = build_explanation_prompt("Recursion", difficulty="beginner")
        assert "beginner audience" in prompt

    def test_requests_markdown_sections(self):
        prompt = build_explanation_prompt("Recursion")
        for heading in ("## Explanation", "## Key Points", "## Code Example", "## Real-world Analogy"):
            assert heading in prompt


class TestFallbackQuestions:
    """Test template fallback questions."""

    def test_count_and_role(self):
        """Test that each fallback question mentions the role."""
        questions = fallback_questions("Backend Engineer", "3", "Node.js", 3)

        assert len(questions) == 3
        assert all("Backend Engineer" in q for q in questions)

    def test_capped_at_template_count(self):
        questions = fallback_questions("QA", "2", "Testing", 20)
        assert len(questions) == len(QUESTION_TEMPLATES) == 10

    def test_deterministic(self):
        assert fallback_questions("PM", "4", "Roadmaps", 5) == fallback_questions("PM", "4", "Roadmaps", 5)

    def test_experience_and_topics_substituted(self):
        questions = fallback_questions("Data Engineer", "7", "Spark", 10)
        joined = "\n".join(questions)

        assert "7 years" in joined
        assert "Spark" in joined
        assert "{" not in joined

    def test_zero_count(self):
        assert fallback_questions("Dev", "1", "Go", 0) == []
