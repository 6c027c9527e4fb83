import re
from typing import List, Tuple

# Pre-compile regex for sentence splitting, capturing the terminator run.
# A period between two digits is a decimal point, not a terminator.
_sentence_split_regex = re.compile(r"((?:[!?。！？]|(?<!\d)\.|\.(?!\d))+)")

# Terminators that carry meaning for the question trigger stay on the sentence
_KEPT_TERMINATORS = set("!?！？")


def split_sentence_units(delta: str) -> List[Tuple[str, str]]:
    """Split newly finalized text into `(sentence, dropped_terminator)` pairs.

    `dropped_terminator` is the period-only run removed from the sentence, or
    an empty string when the terminator stayed attached or there was none.
    `sentence + dropped_terminator` is the unit as the recognizer finalized it.
    """
    if not delta or not delta.strip():
        return []

    parts = _sentence_split_regex.split(delta)
    units = []

    # re.split with a capture group alternates text and terminator
    for index in range(0, len(parts), 2):
        sentence = parts[index].strip()
        if not sentence:
            continue
        terminator = parts[index + 1] if index + 1 < len(parts) else ""
        if _KEPT_TERMINATORS.intersection(terminator):
            units.append((sentence + terminator, ""))
        else:
            units.append((sentence, terminator))

    return units


def split_sentences(delta: str) -> List[str]:
    """Split newly finalized text into sentence units.

    Runs of strong punctuation end a sentence. Runs made only of periods are
    dropped; runs containing `?` or `!` stay attached. Text without strong
    punctuation comes back as a single unit.
    """
    return [sentence for sentence, _ in split_sentence_units(delta)]
