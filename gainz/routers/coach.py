from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException

from gainz.app_state import AppState, get_app_state
from gainz.schemas import CoachRecommendation, PersonalizedWorkout, UserProfile
from gainz.services import coach as coach_service

router = APIRouter()

StateDep = Annotated[AppState, Depends(get_app_state)]


def _profile(state: AppState) -> UserProfile:
    if state.coach.user_profile is None:
        raise HTTPException(status_code=404, detail="No coaching profile")
    return state.coach.user_profile


@router.get("/profile", response_model=UserProfile)
def get_profile(state: StateDep):
    return _profile(state)


@router.post("/profile", response_model=UserProfile, status_code=201)
def initialize_profile(state: StateDep):
    state.coach.initialize_profile()
    return _profile(state)


@router.put("/profile", response_model=UserProfile)
def set_profile(body: UserProfile, state: StateDep):
    state.coach.set_user_profile(body)
    return _profile(state)


@router.patch("/profile", response_model=UserProfile)
def update_profile(body: dict[str, Any], state: StateDep):
    _profile(state)
    state.coach.update_user_profile(body)
    return _profile(state)


@router.post("/analyze", response_model=list[CoachRecommendation])
def analyze_performance(state: StateDep):
    _profile(state)
    state.coach.analyze_performance()
    return state.coach.recommendations


@router.get("/recommendations", response_model=list[CoachRecommendation])
def list_recommendations(state: StateDep, include_dismissed: bool = False):
    return [r for r in state.coach.recommendations if include_dismissed or not r.dismissed]


@router.post("/recommendations/{recommendation_id}/dismiss", status_code=204)
def dismiss_recommendation(recommendation_id: str, state: StateDep):
    if not any(r.id == recommendation_id for r in state.coach.recommendations):
        raise HTTPException(status_code=404, detail="Recommendation not found")
    state.coach.dismiss_recommendation(recommendation_id)


@router.delete("/recommendations", status_code=204)
def clear_recommendations(state: StateDep):
    state.coach.clear_recommendations()


@router.post("/workout", response_model=PersonalizedWorkout)
def personalized_workout(state: StateDep):
    profile = _profile(state)
    if not state.exercises.exercises:
        state.exercises.load_exercises()
    recent = sorted(state.workouts.workout_history, key=lambda w: w.date)
    return coach_service.generate_personalized_workout(profile, recent, state.exercises.exercises)
