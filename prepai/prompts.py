"""Prompt templates sent to the generative model."""

from typing import Optional

from prepai.schemas import Difficulty


QUESTION_PROMPT = """You are an AI trained to generate technical interview questions for a {role} position.

Candidate Experience: {experience} years
Focus Topics: {topics}
Number of Questions: {count}

INSTRUCTIONS:
1. Generate exactly {count} interview questions based on the role and topics provided.
2. Return ONLY a simple numbered list of questions.
3. Each question should be on its own line, starting with a number and period.
4. Do NOT include any additional text, explanations, or formatting.
5. Ensure each question is clear, concise, and relevant to the role and topics.

REQUIRED FORMAT:
1. Question 1 here
2. Question 2 here
3. Question 3 here
... and so on for {count} questions

IMPORTANT: Your response must be EXACTLY {count} questions, nothing more, nothing less."""


EXPLANATION_PROMPT = """You are an AI trained to explain technical interview concepts clearly.

Explain the following concept for a {difficulty} audience, writing in {language}: "{concept}"
{context_block}
Your response must follow this exact markdown format:

# [Concept Title]

## Explanation
[2-3 sentences that clearly explain the core concept]

## Key Points
- [First key point]
- [Second key point]
- [Third key point]
(Include 3-5 bullet points)

## Code Example
```[language]
[Relevant code example that demonstrates the concept]
```

## Real-world Analogy
[A clear, relatable analogy that helps explain the concept]

Note:
- Use clear, concise language suited to a {difficulty} reader
- Make sure code examples are practical and well-commented
- Keep explanations focused and to-the-point
- Format must be in markdown, do not return JSON"""


def build_question_prompt(role: str, experience: str, topics: str, count: int) -> str:
    """Build the question-generation prompt. Inputs are embedded verbatim."""
    return QUESTION_PROMPT.format(
        role=role,
        experience=experience,
        topics=topics,
        count=count,
    )


def build_explanation_prompt(
    concept: str,
    difficulty: Difficulty | str = Difficulty.INTERMEDIATE,
    language: str = "English",
    context: Optional[str] = None,
) -> str:
    """Build the concept-explanation prompt."""
    level = difficulty.value if isinstance(difficulty, Difficulty) else difficulty
    context_block = f"\nAdditional context from the learner:\n{context}\n" if context else ""
    return EXPLANATION_PROMPT.format(
        concept=concept,
        difficulty=level,
        language=language,
        context_block=context_block,
    )
