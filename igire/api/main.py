from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, File, Form, Query, Request, Response, UploadFile

from igire.api.deps import (
    AUTH_COOKIE,
    USER_ID_COOKIE,
    Services,
    current_user,
    get_services,
    optional_user,
    require_admin,
    require_staff,
)
from igire.api.errors import register_exception_handlers
from igire.config import settings
from igire.contracts.payloads import (
    ChangePasswordRequest,
    ComplaintUpdateRequest,
    CreateUserRequest,
    InboundSmsRequest,
    InstitutionCreateRequest,
    InstitutionUpdateRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RedeemRewardRequest,
    RegisterRequest,
    SendSmsRequest,
    UssdRequest,
    VoiceWebhookRequest,
    WebComplaintRequest,
)
from igire.logger import init_logging
from igire.services.errors import AuthError


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_logging(settings)
    yield


app = FastAPI(title="Igire Citizen Hub API", version="1.0.0", lifespan=lifespan)
register_exception_handlers(app)


def _location_form(district: str, sector: str, cell: str, village: str) -> dict[str, str]:
    return {"district": district, "sector": sector, "cell": cell, "village": village}


def _parse_coordinates(raw: str | None) -> dict[str, float] | None:
    if not raw:
        return None
    try:
        lat, lng = (float(part) for part in raw.split(","))
    except ValueError:
        raise ValueError("coordinates must be 'latitude,longitude'") from None
    return {"latitude": lat, "longitude": lng}


@app.get("/health")
def health(services: Services = Depends(get_services)) -> dict[str, Any]:
    return {
        "status": "ok",
        "persistence": "mongodb" if services.using_remote else "memory",
        "persistence_error": services.persistence_error,
        "llm": services.categorizer.llm.enabled,
    }


# complaints


@app.get("/api/complaints")
def list_complaints(services: Services = Depends(get_services)) -> list[dict[str, Any]]:
    return services.complaints.list_all()


@app.post("/api/complaints")
def submit_complaint(
    payload: WebComplaintRequest,
    user: dict[str, Any] | None = Depends(optional_user),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return services.complaints.submit_web(payload, user["id"] if user else None)


@app.get("/api/complaints/joined")
def list_complaints_joined(
    _staff: dict[str, Any] = Depends(require_staff),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    return services.complaints.list_joined()


@app.post("/api/complaints/audio")
def submit_audio_complaint(
    audio: UploadFile = File(...),
    district: str = Form(""),
    sector: str = Form(""),
    cell: str = Form(""),
    village: str = Form(""),
    user: dict[str, Any] = Depends(current_user),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return services.complaints.submit_audio(
        file_name=audio.filename or "recording.webm",
        data=audio.file.read(),
        content_type=audio.content_type,
        location=_location_form(district, sector, cell, village),
        user_id=user["id"],
    )


@app.post("/api/complaints/video")
def submit_video_complaint(
    video: UploadFile = File(...),
    description: str = Form(""),
    category: str = Form(""),
    coordinates: str = Form(""),
    district: str = Form(""),
    sector: str = Form(""),
    cell: str = Form(""),
    village: str = Form(""),
    user: dict[str, Any] = Depends(current_user),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return services.complaints.submit_video(
        file_name=video.filename or "complaint.webm",
        data=video.file.read(),
        content_type=video.content_type,
        location=_location_form(district, sector, cell, village),
        user_id=user["id"],
        description=description,
        category=category or None,
        coordinates=_parse_coordinates(coordinates),
    )


@app.get("/api/complaints/{complaint_id}")
def get_complaint(complaint_id: str, services: Services = Depends(get_services)) -> dict[str, Any]:
    return services.complaints.get(complaint_id)


@app.patch("/api/complaints/{complaint_id}")
def update_complaint(
    complaint_id: str,
    payload: ComplaintUpdateRequest,
    user: dict[str, Any] = Depends(current_user),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return services.complaints.update(complaint_id, payload, user["id"])


# phone channels


@app.post("/api/voice")
def voice_webhook(payload: VoiceWebhookRequest, services: Services = Depends(get_services)) -> dict[str, Any]:
    return services.complaints.submit_voice_call(payload.phone_number, payload.recording_url, payload.language)


@app.post("/api/sms/inbound")
def inbound_sms(payload: InboundSmsRequest, services: Services = Depends(get_services)) -> dict[str, Any]:
    return services.sms.handle_inbound(payload.sender, payload.text)


@app.post("/api/send-sms")
def send_sms(payload: SendSmsRequest, services: Services = Depends(get_services)) -> dict[str, Any]:
    services.sms.send(payload.to, payload.text)
    return {"success": True}


@app.post("/api/ussd")
def ussd(payload: UssdRequest, services: Services = Depends(get_services)) -> dict[str, str]:
    return {"response": services.ussd.handle(payload.session_id, payload.phone_number, payload.text)}


# auth & users


@app.post("/api/auth/register", status_code=201)
def register(payload: RegisterRequest, services: Services = Depends(get_services)) -> dict[str, Any]:
    return services.auth.register(payload)


@app.post("/api/auth/login")
def login(payload: LoginRequest, response: Response, services: Services = Depends(get_services)) -> dict[str, Any]:
    result = services.auth.login(payload)
    max_age = settings.jwt_expire_days * 24 * 60 * 60
    response.set_cookie(
        AUTH_COOKIE,
        result["token"],
        max_age=max_age,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )
    response.set_cookie(USER_ID_COOKIE, result["user"]["id"], max_age=max_age, samesite="lax")
    return result


@app.post("/api/auth/logout")
def logout(response: Response) -> dict[str, Any]:
    response.delete_cookie(AUTH_COOKIE)
    response.delete_cookie(USER_ID_COOKIE)
    return {"success": True}


@app.get("/api/users")
def list_users(
    _admin: dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    return services.auth.list_users()


@app.post("/api/users", status_code=201)
def create_user(
    payload: CreateUserRequest,
    _admin: dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return services.auth.create_user(payload)


# profile & rewards


@app.get("/api/profile")
def get_profile(user: dict[str, Any] = Depends(current_user), services: Services = Depends(get_services)) -> dict[str, Any]:
    return services.auth.profile(user["id"])


@app.put("/api/profile")
def update_profile(
    payload: ProfileUpdateRequest,
    user: dict[str, Any] = Depends(current_user),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return services.auth.update_profile(user["id"], payload)


@app.post("/api/profile/change-password")
def change_password(
    payload: ChangePasswordRequest,
    user: dict[str, Any] = Depends(current_user),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return services.auth.change_password(user["id"], payload)


@app.post("/api/profile/redeem-reward")
def redeem_reward(
    payload: RedeemRewardRequest,
    user: dict[str, Any] = Depends(current_user),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return services.rewards.redeem(user["id"], payload.type, payload.amount)


# institutions


@app.get("/api/institutions")
def list_institutions(services: Services = Depends(get_services)) -> list[dict[str, Any]]:
    return services.institutions.list_public()


@app.post("/api/institutions", status_code=201)
def create_institution(
    payload: InstitutionCreateRequest,
    admin: dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return services.institutions.create(payload, admin["id"])


@app.patch("/api/institutions/{institution_id}")
def update_institution(
    institution_id: str,
    payload: InstitutionUpdateRequest,
    admin: dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return services.institutions.update(institution_id, payload, admin["id"])


@app.delete("/api/institutions/{institution_id}")
def delete_institution(
    institution_id: str,
    admin: dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return services.institutions.delete(institution_id, admin["id"])


# predictions & analytics


@app.get("/api/predictions")
def list_predictions(
    location: str = Query("Kigali"),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    return services.predictions.list_for_location(location)


@app.post("/api/predictions/generate")
def generate_predictions(
    location: str = Query("Kigali"),
    _admin: dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    return services.predictions.generate(location)


@app.delete("/api/predictions/{prediction_id}")
def delete_prediction(
    prediction_id: str,
    _admin: dict[str, Any] = Depends(require_admin),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return services.predictions.delete(prediction_id)


@app.get("/api/analytics")
def analytics(
    time_range: str = Query("30d", alias="timeRange"),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return services.analytics.snapshot(time_range)


# tracking


@app.get("/api/track")
def track(user: dict[str, Any] = Depends(current_user), services: Services = Depends(get_services)) -> list[dict[str, Any]]:
    return services.complaints.track_for_user(user["id"])


@app.get("/api/track/user")
def track_user(
    request: Request,
    user_id: str = Query("", alias="userId"),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    target = user_id.strip() or request.cookies.get(USER_ID_COOKIE, "")
    if not target:
        raise AuthError("Not authenticated")
    return services.complaints.track_for_user(target)
