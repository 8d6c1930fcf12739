"""
Cascade selection: try providers in priority order, stop at the first one
that returns at least one item.

States:
  TRY(i)     asking provider i
  SELECTED   provider i answered with items, stop
  EXHAUSTED  nobody answered with items; caller substitutes placeholders

Provider order is the only tie-break. Confidence is never compared across
providers.
"""

import traceback
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from models import ProviderResult, ProviderUnavailable, StepReport

TRY = "try"
SELECTED = "selected"
EXHAUSTED = "exhausted"

# Per-attempt outcomes
UNAVAILABLE = "unavailable"
FAILED = "failed"
EMPTY = "empty"


@dataclass
class CascadeOutcome:
    state: str = TRY
    index: int = 0
    result: Optional[ProviderResult] = None
    attempts: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def selected(self):
        return self.state == SELECTED

    @property
    def provider(self):
        return self.result.provider if self.result else None


def select(providers, query, report=None):
    """Walk the cascade for one query. Returns a CascadeOutcome."""
    report = report or StepReport("cascade")
    outcome = CascadeOutcome(state=TRY, index=0)

    while outcome.state == TRY:
        if outcome.index >= len(providers):
            outcome.state = EXHAUSTED
            break

        provider = providers[outcome.index]
        name = getattr(provider, "name", str(provider))
        report.provider_calls += 1
        try:
            result = provider.call(query)
        except ProviderUnavailable as e:
            print("    {} -> next ({})".format(name, e.reason[:80]))
            report.provider_failures += 1
            outcome.attempts.append((name, FAILED))
            outcome.index += 1
            continue
        except Exception as e:
            print("  X {}: unexpected {}: {}".format(name, type(e).__name__, str(e)[:100]))
            traceback.print_exc()
            report.provider_failures += 1
            outcome.attempts.append((name, FAILED))
            outcome.index += 1
            continue

        if result is None:
            report.provider_failures += 1
            outcome.attempts.append((name, UNAVAILABLE))
            outcome.index += 1
        elif not result.items:
            report.provider_successes += 1
            outcome.attempts.append((name, EMPTY))
            outcome.index += 1
        else:
            report.provider_successes += 1
            outcome.attempts.append((name, SELECTED))
            outcome.result = result
            outcome.state = SELECTED

    if outcome.state == SELECTED:
        report.notes.append("selected {}".format(outcome.provider))
    else:
        report.notes.append("exhausted after {} providers".format(len(providers)))
    return outcome
