"""ORM -> response dict serialization.

Only relationships that were eagerly loaded by the calling query are
included, so serializing never triggers lazy IO on an async session.
"""

from sqlalchemy import inspect

from hoa_platform.domain.models import (
    Apartment,
    Bid,
    House,
    Job,
    Service,
    ServiceProvider,
    User,
)


def _loaded(obj, attr: str) -> bool:
    return attr not in inspect(obj).unloaded


def _dt(val) -> str | None:
    return val.isoformat() if val else None


def _money(val) -> float | None:
    return float(val) if val is not None else None


def serialize_user_summary(user: User | None) -> dict | None:
    if user is None:
        return None
    return {"id": user.id, "national_id": user.national_id, "role": user.role}


def serialize_user(user: User) -> dict:
    data = {
        "id": user.id,
        "national_id": user.national_id,
        "role": user.role,
        "apartment_id": user.apartment_id,
        "is_active": user.is_active,
        "created_at": _dt(user.created_at),
    }
    if _loaded(user, "apartment") and user.apartment is not None:
        data["apartment"] = serialize_apartment(user.apartment)
    if _loaded(user, "managed_apartments"):
        data["managed_apartments"] = [serialize_apartment(a) for a in user.managed_apartments]
    return data


def serialize_service(service: Service) -> dict:
    return {
        "id": service.id,
        "name": service.name,
        "description": service.description,
        "image": service.image,
    }


def serialize_provider_summary(provider: ServiceProvider | None) -> dict | None:
    if provider is None:
        return None
    return {
        "id": provider.id,
        "name": provider.name,
        "rating": provider.rating,
        "total_jobs": provider.total_jobs,
        "total_earnings": _money(provider.total_earnings),
    }


def serialize_service_provider(provider: ServiceProvider) -> dict:
    """Full provider profile. Bank account details are never exposed."""
    data = {
        "id": provider.id,
        "name": provider.name,
        "email": provider.email,
        "phone_number": provider.phone_number,
        "signup_step": provider.signup_step,
        "is_active": provider.is_active,
        "is_verified": provider.is_verified,
        "bio": provider.bio,
        "profile_picture_url": provider.profile_picture_url,
        "rating": provider.rating,
        "total_jobs": provider.total_jobs,
        "created_at": _dt(provider.created_at),
    }
    if _loaded(provider, "services"):
        data["services"] = [
            serialize_service(link.service) for link in provider.services if _loaded(link, "service")
        ]
    if _loaded(provider, "service_rates"):
        data["service_rates"] = [
            {"service_id": r.service_id, "rate": r.rate, "description": r.description}
            for r in provider.service_rates
        ]
    if _loaded(provider, "locations"):
        data["locations"] = [
            {"city": loc.city, "state": loc.state, "country": loc.country}
            for loc in provider.locations
        ]
    return data


def serialize_house(house: House) -> dict:
    data = {
        "id": house.id,
        "house_number": house.house_number,
        "apartment_id": house.apartment_id,
        "owner_id": house.owner_id,
        "created_at": _dt(house.created_at),
    }
    if _loaded(house, "owner"):
        data["owner"] = serialize_user_summary(house.owner)
    if _loaded(house, "apartment") and house.apartment is not None:
        data["apartment"] = serialize_apartment_summary(house.apartment)
    return data


def serialize_apartment_summary(apartment: Apartment | None) -> dict | None:
    if apartment is None:
        return None
    return {
        "id": apartment.id,
        "name": apartment.name,
        "hoa_number": apartment.hoa_number,
        "city": apartment.city,
    }


def serialize_apartment(apartment: Apartment) -> dict:
    data = {
        "id": apartment.id,
        "hoa_number": apartment.hoa_number,
        "name": apartment.name,
        "address": apartment.address,
        "city": apartment.city,
        "state": apartment.state,
        "country": apartment.country,
        "leader_id": apartment.leader_id,
        "created_at": _dt(apartment.created_at),
        "updated_at": _dt(apartment.updated_at),
    }
    if _loaded(apartment, "leader"):
        data["leader"] = serialize_user_summary(apartment.leader)
    if _loaded(apartment, "houses"):
        data["houses"] = [serialize_house(h) for h in apartment.houses]
    if _loaded(apartment, "jobs"):
        jobs = sorted(apartment.jobs, key=lambda j: j.created_at, reverse=True)
        data["jobs"] = [serialize_job(j) for j in jobs]
    if _loaded(apartment, "houses") and _loaded(apartment, "jobs"):
        data["counts"] = {"houses": len(apartment.houses), "jobs": len(apartment.jobs)}
    return data


def serialize_job(job: Job) -> dict:
    data = {
        "id": job.id,
        "title": job.title,
        "description": job.description,
        "charges": job.charges,
        "work_duration": job.work_duration,
        "time_slot": job.time_slot,
        "location": job.location,
        "experience_level": job.experience_level,
        "start_date": _dt(job.start_date),
        "end_date": _dt(job.end_date),
        "job_type": job.job_type,
        "status": job.status,
        "apartment_id": job.apartment_id,
        "leader_id": job.leader_id,
        "created_by": job.created_by,
        "created_at": _dt(job.created_at),
        "updated_at": _dt(job.updated_at),
    }
    if _loaded(job, "services"):
        data["services"] = [
            {
                "service_id": link.service_id,
                "service": serialize_service(link.service) if _loaded(link, "service") else None,
            }
            for link in job.services
        ]
    if _loaded(job, "apartment"):
        data["apartment"] = serialize_apartment_summary(job.apartment)
    if _loaded(job, "leader"):
        data["leader"] = serialize_user_summary(job.leader)
    if _loaded(job, "creator"):
        data["creator"] = serialize_user_summary(job.creator)
    if _loaded(job, "bids"):
        # Cheapest first
        bids = sorted(job.bids, key=lambda b: b.total_price)
        data["bids"] = [serialize_bid(b, include_job=False) for b in bids]
    return data


def serialize_bid(bid: Bid, include_job: bool = True) -> dict:
    data = {
        "id": bid.id,
        "job_id": bid.job_id,
        "service_provider_id": bid.service_provider_id,
        "total_price": _money(bid.total_price),
        "cover_letter": bid.cover_letter,
        "document_url": bid.document_url,
        "status": bid.status,
        "created_at": _dt(bid.created_at),
        "updated_at": _dt(bid.updated_at),
    }
    if _loaded(bid, "service_provider"):
        data["service_provider"] = serialize_provider_summary(bid.service_provider)
    if include_job and _loaded(bid, "job") and bid.job is not None:
        data["job"] = serialize_job(bid.job)
    return data
