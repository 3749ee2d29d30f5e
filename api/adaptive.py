"""FastAPI router for the adaptive mastery and variant policy engine."""

import logging
from typing import Dict, Any
from fastapi import APIRouter, HTTPException
from models.schemas import (
    ActionRequest,
    ActionResponse,
    InitialVariantRequest,
    Interaction,
    MasteryState,
    MasteryUpdateRequest,
    MasteryUpdateResponse,
    RiskRequest,
    RiskResponse,
    VariantCacheEntry,
    VariantKey,
    VariantPollUpdate,
    VariantSelectionRequest,
    VariantSelectionResponse,
    VariantType,
    VariantWaitRequest,
)
from mastery.bkt import MasteryEstimator, InvalidSignalError, clamp_probability, coerce_unit_interval
from curriculum.action_policy import ActionPolicy
from content.variant_selector import VariantSelector
from content.variant_cache import VariantCacheManager, VariantCacheError
from content.variant_waiter import VariantReadinessWaiter
from analytics.risk_classifier import RiskClassifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/adaptive", tags=["adaptive"])

# Initialize services
mastery_estimator = MasteryEstimator()
action_policy = ActionPolicy()
variant_selector = VariantSelector()
risk_classifier = RiskClassifier()
cache_manager = VariantCacheManager()
readiness_waiter = VariantReadinessWaiter(cache_manager)


@router.post("/mastery/update", response_model=MasteryUpdateResponse)
async def update_mastery(request: MasteryUpdateRequest):
    """
    Fold one interaction into a student's mastery for a skill.
    
    The caller persists the returned mastery; nothing is stored here.
    """
    try:
        if request.prior is None:
            state = mastery_estimator.seed_state(request.student_id, request.skill_id)
        else:
            state = MasteryState(
                student_id=request.student_id,
                skill_id=request.skill_id,
                probability=clamp_probability(coerce_unit_interval(request.prior, "prior")),
                interaction_count=request.interaction_count
            )
        
        interaction = Interaction(
            is_correct=request.is_correct,
            hints_used=request.hints_used,
            response_time_sec=request.response_time_sec
        )
        new_state = mastery_estimator.apply(state, interaction)
        
        # Without a recent-accuracy aggregate, the attempt itself is the sample
        accuracy = request.accuracy
        if accuracy is None:
            accuracy = 1.0 if request.is_correct else 0.0
        action = action_policy.determine_action(new_state.probability, accuracy)
        
        logger.info(
            f"BKT update for {request.student_id}: {request.skill_id} "
            f"{state.probability:.2f} -> {new_state.probability:.2f} [{action.value}]"
        )
        
        return MasteryUpdateResponse(
            student_id=new_state.student_id,
            skill_id=new_state.skill_id,
            prior=state.probability,
            mastery=new_state.probability,
            action=action,
            interaction_count=new_state.interaction_count
        )
    except InvalidSignalError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/action", response_model=ActionResponse)
async def determine_action(request: ActionRequest):
    """Advisory pedagogical action for the lesson flow."""
    try:
        return ActionResponse(
            action=action_policy.determine_action(request.mastery, request.accuracy)
        )
    except InvalidSignalError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/variant/select", response_model=VariantSelectionResponse)
async def select_variant(request: VariantSelectionRequest):
    """Variant choice during an exercise."""
    try:
        variant_type = variant_selector.select_variant(
            request.mastery,
            request.accuracy,
            request.has_scaffolding,
            request.has_enrichment
        )
        return VariantSelectionResponse(variant_type=variant_type)
    except InvalidSignalError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/variant/initial", response_model=VariantSelectionResponse)
async def initial_variant(request: InitialVariantRequest):
    """Variant choice at the start of a session, from stored mastery only."""
    try:
        variant_type = variant_selector.get_initial_variant(
            request.topic_mastery,
            request.has_scaffolding,
            request.has_enrichment
        )
        return VariantSelectionResponse(variant_type=variant_type)
    except InvalidSignalError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/risk", response_model=RiskResponse)
async def calculate_risk(request: RiskRequest):
    """Risk tier for reporting dashboards."""
    try:
        risk_level = risk_classifier.calculate_risk_level(
            request.accuracy,
            request.hint_dependency,
            request.avg_mastery
        )
        return RiskResponse(risk_level=risk_level)
    except InvalidSignalError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/variant/stats")
async def variant_cache_stats() -> Dict[str, Any]:
    """Variant cache hit/miss statistics."""
    return await cache_manager.get_cache_stats()


@router.get("/variant/{content_id}/{variant_type}", response_model=VariantCacheEntry)
async def get_variant_status(content_id: str, variant_type: VariantType):
    """Single cache lookup, no waiting."""
    key = VariantKey(content_id=content_id, variant_type=variant_type)
    try:
        return await cache_manager.lookup(key)
    except VariantCacheError as e:
        logger.error(f"Variant status lookup failed: {e}")
        raise HTTPException(status_code=503, detail=str(e))


@router.post("/variant/wait", response_model=VariantPollUpdate)
async def wait_for_variant(request: VariantWaitRequest):
    """
    Wait until the variant is ready, generation fails, or the timeout elapses.
    
    The response always carries a terminal state; the caller decides
    whether to wait longer or fall back to the original content.
    """
    key = VariantKey(content_id=request.content_id, variant_type=request.variant_type)
    return await readiness_waiter.wait(
        key,
        interval_ms=request.interval_ms,
        timeout_ms=request.timeout_ms
    )
