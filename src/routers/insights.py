"""Risk assessment, anomaly detection, predictions and alert endpoints."""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Response

from src.dependencies import CurrentUser, Insights
from src.models.insights import (
    AdherenceReportRead,
    AlertRead,
    DetectionRead,
    ForecastRead,
    RecommendationRead,
    RiskAssessmentRead,
    RiskRequest,
)

router = APIRouter(tags=["insights"])


@router.post("/insights/risk", response_model=RiskAssessmentRead)
async def assess_risk(user: CurrentUser, service: Insights, body: RiskRequest | None = None) -> Any:
    metrics = body.metrics.to_domain() if body and body.metrics else None
    assessment, _ = await service.assess_risk(user.user_id, metrics)
    return RiskAssessmentRead.from_domain(assessment)


@router.post("/insights/anomalies", response_model=DetectionRead)
async def detect_anomalies(user: CurrentUser, service: Insights) -> Any:
    anomalies, alerts = await service.detect_anomalies(user.user_id)
    return DetectionRead(anomalies=anomalies, new_alerts=[AlertRead.from_domain(a) for a in alerts])


@router.get("/insights/predictions", response_model=ForecastRead | None)
async def get_predictions(
    user: CurrentUser,
    service: Insights,
    as_of: date | None = Query(default=None),
) -> Any:
    forecast = await service.predict(user.user_id, as_of)
    if forecast is None:
        return None
    return ForecastRead.from_domain(forecast)


@router.get("/insights/lifestyle", response_model=list[RecommendationRead])
async def get_lifestyle_plan(user: CurrentUser, service: Insights) -> Any:
    return [RecommendationRead.from_domain(r) for r in await service.lifestyle(user.user_id)]


@router.get("/insights/adherence", response_model=AdherenceReportRead)
async def get_adherence(user: CurrentUser, service: Insights) -> Any:
    summary, insight = await service.adherence_report(user.user_id)
    return AdherenceReportRead.from_domain(summary, insight)


@router.get("/alerts", response_model=list[AlertRead])
async def list_alerts(user: CurrentUser, service: Insights) -> Any:
    return [AlertRead.from_domain(a) for a in await service.list_alerts(user.user_id)]


@router.delete("/alerts/{alert_id}", status_code=204)
async def dismiss_alert(alert_id: str, user: CurrentUser, service: Insights) -> Response:
    if not await service.dismiss_alert(user.user_id, alert_id):
        raise HTTPException(status_code=404, detail="Alert not found")
    return Response(status_code=204)
