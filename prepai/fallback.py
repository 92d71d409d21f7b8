"""Template questions used when the model cannot be reached or parsed."""

QUESTION_TEMPLATES = [
    "What are the key responsibilities of a {role}?",
    "How does your {experience} years of experience prepare you for this {role} role?",
    "What are the most important skills for a {role} to have?",
    "As a {role}, how do you stay updated with the latest trends in {topics}?",
    "Can you describe a challenging {topics} project you worked on as a {role}?",
    "What tools and technologies are you most proficient with as a {role}?",
    "How do you approach problem-solving with {topics} in a {role} position?",
    "What professional experience do you have with {topics} as a {role}?",
    "How would you, as a {role}, explain {topics} to someone who is not technical?",
    "What common challenges have you faced with {topics} in your work as a {role}?",
]


def fallback_questions(role: str, experience: str, topics: str, count: int) -> list[str]:
    """
    Return up to ``count`` template questions for the role.

    Deterministic; at most ``len(QUESTION_TEMPLATES)`` questions.
    """
    count = max(0, min(count, len(QUESTION_TEMPLATES)))
    return [
        template.format(role=role, experience=experience, topics=topics)
        for template in QUESTION_TEMPLATES[:count]
    ]
