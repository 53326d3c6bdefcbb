from __future__ import annotations

from igire.api.deps import get_services
from igire.contracts.payloads import InstitutionCreateRequest

DEFAULT_INSTITUTIONS = [
    ("WASAC", "water", "contact@wasac.rw", "+250788000001"),
    ("City of Kigali Sanitation", "sanitation", "sanitation@kigalicity.gov.rw", "+250788000002"),
    ("RTDA", "roads", "info@rtda.gov.rw", "+250788000003"),
    ("REG", "electricity", "info@reg.rw", "+250788000004"),
]


def main() -> None:
    services = get_services()
    if not services.using_remote:
        print(f"Refusing to seed the in-memory store: {services.persistence_error}")
        return

    existing = {str(r.get("email", "")).lower() for r in services.repo.list_institutions()}
    for name, department, email, phone in DEFAULT_INSTITUTIONS:
        if email in existing:
            print(f"skip {name}: already registered")
            continue
        created = services.institutions.create(
            InstitutionCreateRequest(name=name, department=department, email=email, phone=phone),
            actor_id=None,
        )
        print(f"created {created['id']} {name} ({department}) temp password: {created['temporaryPassword']}")


if __name__ == "__main__":
    main()
