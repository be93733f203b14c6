"""
Onboarding state machines.

Homeowner wizard (user_onboarding.current_step):

    1 welcome -> 2 plan -> 3 property -> 4 region -> 5 tasks
      -> 6 upsell (skipped on Premium) -> 7 finish -> 8 done

Provider onboarding (provider_onboarding): seven ordered steps. A step is
reachable once every step before it has been completed, and completing
the last one marks the whole flow complete.
"""
from typing import Any, Dict

from sqlalchemy.orm import Session

from homecare.models.onboarding import UserOnboarding, ProviderOnboarding
from homecare.core.exceptions import ConflictError

# Homeowner wizard
WELCOME_STEP = 1
PLAN_STEP = 2
PROPERTY_STEP = 3
REGION_STEP = 4
TASKS_STEP = 5
UPSELL_STEP = 6
FINISH_STEP = 7
DONE_STEP = 8

# Provider onboarding
PROVIDER_STEPS = [
    (1, "basic-info", "Basic Information"),
    (2, "services-offered", "Services Offered"),
    (3, "documents-upload", "Documents Upload"),
    (4, "business-profile", "Business Profile"),
    (5, "external-reviews", "External Reviews"),
    (6, "background-check-consent", "Background Check Consent"),
    (7, "agreements", "Agreements"),
]
TOTAL_PROVIDER_STEPS = len(PROVIDER_STEPS)
PROVIDER_STEP_PATHS = {number: path for number, path, _ in PROVIDER_STEPS}


# ---------------------------------------------------------------------------
# Homeowner wizard
# ---------------------------------------------------------------------------

def get_or_create_user_onboarding(db: Session, user_id: str) -> UserOnboarding:
    state = db.get(UserOnboarding, user_id)
    if state is None:
        state = UserOnboarding(user_id=user_id, current_step=WELCOME_STEP, completed=False)
        db.add(state)
        db.commit()
    return state


def require_step(state: UserOnboarding, step: int) -> None:
    if state.completed:
        raise ConflictError("Onboarding is already complete")
    if state.current_step != step:
        raise ConflictError(f"Onboarding is at step {state.current_step}")


def advance(state: UserOnboarding, to_step: int) -> UserOnboarding:
    state.current_step = to_step
    if to_step >= DONE_STEP:
        state.completed = True
    return state


def step_after_tasks(plan_slug: str) -> int:
    """Premium users have nothing to upsell."""
    return FINISH_STEP if plan_slug == "rivopro" else UPSELL_STEP


def go_back(state: UserOnboarding) -> UserOnboarding:
    if state.completed:
        raise ConflictError("Onboarding is already complete")
    state.current_step = max(WELCOME_STEP, state.current_step - 1)
    return state


# ---------------------------------------------------------------------------
# Provider onboarding
# ---------------------------------------------------------------------------

def get_or_create_provider_onboarding(db: Session, user_id: str) -> ProviderOnboarding:
    progress = db.get(ProviderOnboarding, user_id)
    if progress is None:
        progress = ProviderOnboarding(user_id=user_id, current_step=1, completed=False, steps_completed={})
        db.add(progress)
        db.flush()
    return progress


def can_access_step(progress: ProviderOnboarding, step: int) -> bool:
    return 1 <= step <= progress.current_step


def require_provider_step(progress: ProviderOnboarding, step: int) -> None:
    if not can_access_step(progress, step):
        current_path = PROVIDER_STEP_PATHS[progress.current_step]
        raise ConflictError(
            f"Complete earlier onboarding steps first (current step: {current_path})"
        )


def complete_provider_step(progress: ProviderOnboarding, step: int) -> ProviderOnboarding:
    """Mark a step done and move the pointer forward (never backwards)."""
    steps = dict(progress.steps_completed or {})
    steps[str(step)] = True
    # Reassign so the JSON column is flagged dirty
    progress.steps_completed = steps

    next_step = step + 1 if step < TOTAL_PROVIDER_STEPS else TOTAL_PROVIDER_STEPS
    progress.current_step = max(progress.current_step, next_step)
    if step == TOTAL_PROVIDER_STEPS:
        progress.completed = True
    return progress


def completion_percentage(progress: ProviderOnboarding) -> int:
    done = sum(1 for value in (progress.steps_completed or {}).values() if value)
    return round(100 * done / TOTAL_PROVIDER_STEPS)


def provider_progress_summary(progress: ProviderOnboarding) -> Dict[str, Any]:
    steps_completed = progress.steps_completed or {}
    return {
        "current_step": progress.current_step,
        "completed": progress.completed,
        "next_step_path": None if progress.completed else PROVIDER_STEP_PATHS[progress.current_step],
        "completion_percentage": completion_percentage(progress),
        "steps": [
            {
                "step": number,
                "path": path,
                "title": title,
                "completed": bool(steps_completed.get(str(number))),
                "accessible": can_access_step(progress, number),
            }
            for number, path, title in PROVIDER_STEPS
        ],
    }
