"""Label selector parsing."""

from __future__ import annotations

from ..models import Labels

_OR = "||"
_NOT = "!"


def parse_label_selector(selector: str) -> Labels:
    """Split a label selector into included and excluded labels.

    ``"konveyor.io/target=quarkus || !konveyor.io/source=java8"`` yields
    ``included=["konveyor.io/target=quarkus"]`` and
    ``excluded=["konveyor.io/source=java8"]``. Whitespace around terms and
    after ``!`` is ignored. Duplicates are dropped and a label that is both
    included and excluded stays excluded only.
    """

    labels = Labels()
    if not selector:
        return labels

    for part in selector.split(_OR):
        term = part.strip()
        if not term:
            continue

        if term.startswith(_NOT):
            excluded = term[len(_NOT):].strip()
            if excluded and excluded not in labels.excluded:
                labels.excluded.append(excluded)
        elif term not in labels.included:
            labels.included.append(term)

    labels.included = [label for label in labels.included if label not in labels.excluded]
    return labels


__all__ = ["parse_label_selector"]
