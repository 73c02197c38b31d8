import pytest


@pytest.fixture
def grades_docs():
    # Two classes for learner 7, one of them without an exam for learner 8
    return [
        {"learner_id": 7, "class_id": 101, "scores": [
            {"type": "exam", "score": 80}, {"type": "quiz", "score": 90},
            {"type": "homework", "score": 100}]},
        {"learner_id": 7, "class_id": 102, "scores": [
            {"type": "exam", "score": 60}, {"type": "exam", "score": 70},
            {"type": "quiz", "score": 50}, {"type": "homework", "score": 40}]},
        {"learner_id": 8, "class_id": 101, "scores": [
            {"type": "quiz", "score": 95}, {"type": "homework", "score": 85}]},
        {"learner_id": 9, "class_id": 102, "scores": [
            {"type": "exam", "score": 70}, {"type": "quiz", "score": 70}]},
    ]
