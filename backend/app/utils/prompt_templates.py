DIFFICULTY_GUIDANCE = {
    "easy": "common general knowledge most adults would know; short, direct questions",
    "medium": "requires some specific knowledge of the topic; avoid trick questions",
    "hard": "specialist detail, precise figures or less well-known facts; distractors should be close",
}

SUGGESTED_TIME_LIMITS = {"easy": "10-15", "medium": "18-25", "hard": "30-40"}


def build_trivia_question_prompt(topic: str, difficulty: str, num_questions: int) -> str:
    guidance = DIFFICULTY_GUIDANCE.get(difficulty, DIFFICULTY_GUIDANCE["medium"])
    time_range = SUGGESTED_TIME_LIMITS.get(difficulty, "15-25")

    return f"""
        Generate **exactly** {num_questions} multiple-choice trivia questions about "{topic}".

        Difficulty: {difficulty} ({guidance}).

        Requirements for each question object:
        - text: The question prompt (string, at least 10 characters).
        - options: Exactly 4 distinct answer choices (array of strings).
        - correctOption: The correct answer, copied character for character from options.
        - timeLimit: Seconds to answer, an integer in the {time_range} range.

        Rules:
        - Every question must be factually correct and have exactly one right answer.
        - Do not use "All of the above" or "None of the above".
        - Do not repeat a question.
        - Keep the questions suitable for all ages.

        Output format must be **exactly** a JSON array of objects that looks like this:

        [
        {{
            "text": "…",
            "options": ["…", "…", "…", "…"],
            "correctOption": "…",
            "timeLimit": 15
        }},
        … {num_questions} total …
        ]

        Do **not** wrap the array in an outer object or include any commentary.
        """
