from Levenshtein import ratio as lev_ratio
from difflib import SequenceMatcher
from typing import Dict, Any, List
from config import load_config

def suggest_grade(full_text: str, user_text: str, config: Dict[str, Any] = None) -> int:
    """Suggest a 1-4 grade for typed recall using Levenshtein similarity."""
    if not config:
        config = load_config()
    grading_config = config.get('grading', {})
    perfect_th = grading_config.get('levenshtein_perfect_threshold', 0.98)
    good_th = grading_config.get('levenshtein_good_threshold', 0.85)
    hard_th = grading_config.get('levenshtein_hard_threshold', 0.6)

    if not user_text or not user_text.strip():
        return 1

    user_clean = " ".join(user_text.lower().split())
    full_clean = " ".join(full_text.lower().split())
    lev = lev_ratio(user_clean, full_clean)

    if lev >= perfect_th:
        return 4
    elif lev >= good_th:
        return 3
    elif lev >= hard_th:
        return 2
    else:
        return 1

def token_diff(expected_text: str, actual_text: str) -> Dict[str, List[Dict[str, str]]]:
    """Compute a whitespace-token diff between the verse and the typed recall."""
    expected_tokens = expected_text.split() if expected_text else []
    actual_tokens = actual_text.split() if actual_text else []
    matcher = SequenceMatcher(None, expected_tokens, actual_tokens)
    expected: List[Dict[str, str]] = []
    actual: List[Dict[str, str]] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            for token in expected_tokens[i1:i2]:
                expected.append({"token": token, "status": "match"})
            for token in actual_tokens[j1:j2]:
                actual.append({"token": token, "status": "match"})
        elif tag == "delete":
            for token in expected_tokens[i1:i2]:
                expected.append({"token": token, "status": "missing"})
        elif tag == "insert":
            for token in actual_tokens[j1:j2]:
                actual.append({"token": token, "status": "extra"})
        elif tag == "replace":
            for token in expected_tokens[i1:i2]:
                expected.append({"token": token, "status": "substitution"})
            for token in actual_tokens[j1:j2]:
                actual.append({"token": token, "status": "substitution"})
    return {"expected": expected, "actual": actual}
