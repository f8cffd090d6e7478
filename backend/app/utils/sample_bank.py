from typing import Dict, List, Sequence

from app.models.question_models import Question

# Verified fallback questions, five per tier. Never mutated at runtime.
SAMPLE_QUESTIONS: Dict[str, List[Question]] = {
    "easy": [
        Question(
            text="What is the capital of France?",
            options=["London", "Berlin", "Paris", "Madrid"],
            correctOption="Paris",
            timeLimit=15,
            difficulty="easy",
        ),
        Question(
            text="Which planet is closest to the Sun?",
            options=["Venus", "Mercury", "Earth", "Mars"],
            correctOption="Mercury",
            timeLimit=12,
            difficulty="easy",
        ),
        Question(
            text="What color do you get when you mix red and white?",
            options=["Purple", "Orange", "Pink", "Yellow"],
            correctOption="Pink",
            timeLimit=10,
            difficulty="easy",
        ),
        Question(
            text="How many sides does a triangle have?",
            options=["2", "3", "4", "5"],
            correctOption="3",
            timeLimit=8,
            difficulty="easy",
        ),
        Question(
            text="Which animal is known as the 'King of the Jungle'?",
            options=["Tiger", "Elephant", "Lion", "Bear"],
            correctOption="Lion",
            timeLimit=12,
            difficulty="easy",
        ),
    ],
    "medium": [
        Question(
            text="What is the chemical symbol for gold?",
            options=["Go", "Gd", "Au", "Ag"],
            correctOption="Au",
            timeLimit=20,
            difficulty="medium",
        ),
        Question(
            text="In which year did World War II end?",
            options=["1944", "1945", "1946", "1947"],
            correctOption="1945",
            timeLimit=25,
            difficulty="medium",
        ),
        Question(
            text="What is the largest mammal in the world?",
            options=["African Elephant", "Blue Whale", "Giraffe", "Hippopotamus"],
            correctOption="Blue Whale",
            timeLimit=18,
            difficulty="medium",
        ),
        Question(
            text="Which programming language is known for its use in data science?",
            options=["JavaScript", "Python", "C++", "PHP"],
            correctOption="Python",
            timeLimit=22,
            difficulty="medium",
        ),
        Question(
            text="What is the square root of 144?",
            options=["10", "11", "12", "13"],
            correctOption="12",
            timeLimit=15,
            difficulty="medium",
        ),
    ],
    "hard": [
        Question(
            text="What is the time complexity of binary search?",
            options=["O(n)", "O(log n)", "O(n log n)", "O(n²)"],
            correctOption="O(log n)",
            timeLimit=35,
            difficulty="hard",
        ),
        Question(
            text="Which of the following is NOT a principle of object-oriented programming?",
            options=["Encapsulation", "Inheritance", "Polymorphism", "Compilation"],
            correctOption="Compilation",
            timeLimit=30,
            difficulty="hard",
        ),
        Question(
            text="In quantum mechanics, what does Schrödinger's equation describe?",
            options=["Wave function evolution", "Particle position", "Energy levels", "Spin states"],
            correctOption="Wave function evolution",
            timeLimit=40,
            difficulty="hard",
        ),
        Question(
            text="What is the primary cause of ocean acidification?",
            options=["Industrial pollution", "CO2 absorption", "Temperature rise", "Overfishing"],
            correctOption="CO2 absorption",
            timeLimit=35,
            difficulty="hard",
        ),
        Question(
            text="Which algorithm is commonly used for finding shortest paths in graphs?",
            options=["Bubble Sort", "Dijkstra's Algorithm", "Quick Sort", "Binary Search"],
            correctOption="Dijkstra's Algorithm",
            timeLimit=30,
            difficulty="hard",
        ),
    ],
}


def get_sample_questions(difficulty: str) -> List[Question]:
    """Copies of the bank tier for `difficulty`, in bank order. Unknown tiers get the easy set."""
    tier = SAMPLE_QUESTIONS.get(difficulty, SAMPLE_QUESTIONS["easy"])
    return [q.model_copy(deep=True) for q in tier]


def slice_or_pad(bank: Sequence[Question], n: int) -> List[Question]:
    """
    First `n` entries of `bank`; when `n` is larger than the bank, the bank is
    repeated from the start until there are `n` entries.

    slice_or_pad([a, b, c], 7) -> [a, b, c, a, b, c, a]
    """
    if n <= 0 or not bank:
        return []
    out: List[Question] = []
    while len(out) < n:
        out.extend(bank[: n - len(out)])
    return out
