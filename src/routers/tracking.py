"""Endpoints for logging periods, symptoms and body metrics."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from src.dependencies import CurrentUser, Insights
from src.models.base import MessageResponse
from src.models.insights import (
    AdherenceEntryCreate,
    AdherenceEntryRead,
    AlertRead,
    CycleEntryCreate,
    CycleRecordRead,
    CycleSavedRead,
    SymptomEntryCreate,
    SymptomRecordRead,
    UserMetricsSchema,
)

router = APIRouter(tags=["tracking"])


@router.get("/cycles", response_model=list[CycleRecordRead])
async def list_cycles(user: CurrentUser, service: Insights) -> Any:
    return [CycleRecordRead.from_domain(c) for c in await service.load_cycles(user.user_id)]


@router.post("/cycles", response_model=CycleSavedRead, status_code=201)
async def create_cycle(user: CurrentUser, service: Insights, body: CycleEntryCreate) -> Any:
    record, alerts = await service.add_cycle(user.user_id, body)
    return CycleSavedRead(
        record=CycleRecordRead.from_domain(record),
        new_alerts=[AlertRead.from_domain(a) for a in alerts],
    )


@router.get("/symptoms", response_model=list[SymptomRecordRead])
async def list_symptoms(user: CurrentUser, service: Insights) -> Any:
    return [SymptomRecordRead.from_domain(s) for s in await service.load_symptoms(user.user_id)]


@router.post("/symptoms", response_model=SymptomRecordRead, status_code=201)
async def create_symptom(user: CurrentUser, service: Insights, body: SymptomEntryCreate) -> Any:
    return SymptomRecordRead.from_domain(await service.add_symptom(user.user_id, body))


@router.get("/lifestyle", response_model=list[AdherenceEntryRead])
async def list_lifestyle_logs(user: CurrentUser, service: Insights) -> Any:
    return [AdherenceEntryRead.from_domain(e) for e in await service.load_adherence(user.user_id)]


@router.post("/lifestyle", response_model=AdherenceEntryRead, status_code=201)
async def log_lifestyle(user: CurrentUser, service: Insights, body: AdherenceEntryCreate) -> Any:
    return AdherenceEntryRead.from_domain(await service.log_adherence(user.user_id, body))


@router.put("/metrics", response_model=UserMetricsSchema)
async def put_metrics(user: CurrentUser, service: Insights, body: UserMetricsSchema) -> Any:
    await service.set_metrics(user.user_id, body)
    return body


@router.delete("/data", response_model=MessageResponse)
async def delete_all_data(user: CurrentUser, service: Insights) -> Any:
    await service.delete_all(user.user_id)
    return MessageResponse(message="All data has been permanently deleted.")
