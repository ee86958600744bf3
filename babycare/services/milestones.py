"""Default developmental milestone catalogue seeded for each new child."""

from typing import Dict, List

DEFAULT_MILESTONES: Dict[str, List[dict]] = {
    "motor": [
        {"title": "Holds head up", "description": "Lifts head while lying on tummy", "age_months": 1},
        {"title": "Rolls over", "description": "Rolls from back to tummy", "age_months": 4},
        {"title": "Sits unsupported", "description": "Sits without support", "age_months": 6},
        {"title": "Crawls", "description": "Crawls on hands and knees", "age_months": 8},
        {"title": "Pulls to stand", "description": "Stands while holding on to furniture", "age_months": 9},
        {"title": "Walks", "description": "Takes a few steps independently", "age_months": 12},
        {"title": "Runs", "description": "Runs", "age_months": 18},
        {"title": "Jumps", "description": "Jumps with both feet off the ground", "age_months": 24},
    ],
    "language": [
        {"title": "Social smile", "description": "Smiles in response to people", "age_months": 2},
        {"title": "Babbles", "description": "Makes babbling sounds", "age_months": 4},
        {"title": "Says mama or dada", "description": "Uses mama or dada meaningfully", "age_months": 8},
        {"title": "First word", "description": "Says a first meaningful word", "age_months": 12},
        {"title": "Short phrases", "description": "Uses two or three word phrases", "age_months": 18},
        {"title": "Simple conversation", "description": "Holds a simple conversation", "age_months": 24},
    ],
    "social": [
        {"title": "Eye contact", "description": "Makes eye contact", "age_months": 0.5},
        {"title": "Recognizes caregivers", "description": "Tells main caregivers apart", "age_months": 3},
        {"title": "Imitates gestures", "description": "Copies simple gestures", "age_months": 6},
        {"title": "Waves bye-bye", "description": "Waves goodbye", "age_months": 9},
        {"title": "Shares", "description": "Is willing to share toys", "age_months": 18},
        {"title": "Plays with peers", "description": "Plays together with other children", "age_months": 24},
    ],
    "cognitive": [
        {"title": "Tracks objects", "description": "Follows moving objects with the eyes", "age_months": 2},
        {"title": "Turns to sounds", "description": "Turns head towards a sound", "age_months": 4},
        {"title": "Object permanence", "description": "Knows hidden objects still exist", "age_months": 8},
        {"title": "Imitates actions", "description": "Imitates actions seen in others", "age_months": 12},
        {"title": "Solves problems", "description": "Tries to solve simple problems", "age_months": 18},
        {"title": "Pretend play", "description": "Engages in pretend play", "age_months": 24},
    ],
    "self_care": [
        {"title": "Drinks from a cup", "description": "Drinks from a cup", "age_months": 12},
        {"title": "Finger feeds", "description": "Picks up food and feeds self", "age_months": 8},
        {"title": "Uses a spoon", "description": "Tries to use a spoon", "age_months": 15},
        {"title": "Brushes teeth", "description": "Tries to brush own teeth", "age_months": 18},
        {"title": "Toilet training", "description": "Signals the need to use the toilet", "age_months": 24},
        {"title": "Dresses self", "description": "Tries to get dressed", "age_months": 30},
    ],
}

def iter_default_milestones():
    for category, milestones in DEFAULT_MILESTONES.items():
        for milestone in milestones:
            yield dict(milestone, category=category)
