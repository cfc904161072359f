"""Default fleet written to an empty collection on first run."""

from __future__ import annotations

from fleethub.models.vehicle import ConditionEntry, ServiceRecord, Vehicle, VehicleStatus

DEFAULT_FLEET: tuple[Vehicle, ...] = (
    Vehicle(
        name="Lamborghini Huracán EVO",
        year=2023,
        vehicle_type="Supercar",
        price_per_day=1500,
        image_url="https://placehold.co/600x400/111827/f59e0b?text=Huracan+EVO",
        status=VehicleStatus.AVAILABLE,
        last_service_date="2026-03-15",
        next_service_date="2027-03-15",
        service_history=(ServiceRecord(date="2026-03-15", notes="Annual service, brake fluid flush", cost=2400),),
        current_mileage=8450,
        condition_log=(ConditionEntry(date="2026-03-16", note="Minor stone chip on front splitter"),),
        total_days_rented=42,
        lifetime_revenue=63000,
    ),
    Vehicle(
        name="Rolls-Royce Cullinan",
        year=2022,
        vehicle_type="Luxury SUV",
        price_per_day=1800,
        image_url="https://placehold.co/600x400/111827/f59e0b?text=Cullinan",
        status=VehicleStatus.RENTED,
        last_service_date="2026-01-20",
        next_service_date="2027-01-20",
        service_history=(ServiceRecord(date="2026-01-20", notes="Oil change and cabin filter", cost=1200),),
        current_mileage=15230,
        condition_log=(ConditionEntry(date="2026-01-21", note="Interior spotless"),),
        total_days_rented=67,
        lifetime_revenue=120600,
    ),
    Vehicle(
        name="Ferrari SF90 Stradale",
        year=2024,
        vehicle_type="Hybrid Supercar",
        price_per_day=2200,
        image_url="https://placehold.co/600x400/111827/f59e0b?text=SF90",
        status=VehicleStatus.AVAILABLE,
        last_service_date="2026-04-02",
        next_service_date="2027-04-02",
        service_history=(ServiceRecord(date="2026-04-02", notes="Hybrid system inspection", cost=3100),),
        current_mileage=3120,
        condition_log=(),
        total_days_rented=18,
        lifetime_revenue=39600,
    ),
    Vehicle(
        name="Bentley Continental GT",
        year=2023,
        vehicle_type="Grand Tourer",
        price_per_day=1100,
        image_url="https://placehold.co/600x400/111827/f59e0b?text=Continental+GT",
        status=VehicleStatus.AVAILABLE,
        last_service_date="2025-12-10",
        next_service_date="2026-12-10",
        service_history=(ServiceRecord(date="2025-12-10", notes="Tyre rotation and alignment", cost=650),),
        current_mileage=21890,
        condition_log=(ConditionEntry(date="2025-12-11", note="Light swirl marks on bonnet"),),
        total_days_rented=95,
        lifetime_revenue=104500,
    ),
    Vehicle(
        name="Porsche 911 Turbo S",
        year=2024,
        vehicle_type="Sports Car",
        price_per_day=950,
        image_url="https://placehold.co/600x400/111827/f59e0b?text=911+Turbo+S",
        status=VehicleStatus.RENTED,
        last_service_date="2026-02-28",
        next_service_date="2027-02-28",
        service_history=(ServiceRecord(date="2026-02-28", notes="First inspection", cost=480),),
        current_mileage=6740,
        condition_log=(),
        total_days_rented=51,
        lifetime_revenue=48450,
    ),
    Vehicle(
        name="Mercedes-Maybach S 680",
        year=2023,
        vehicle_type="Limousine",
        price_per_day=1300,
        image_url="https://placehold.co/600x400/111827/f59e0b?text=Maybach+S680",
        status=VehicleStatus.AVAILABLE,
        last_service_date="2026-05-05",
        next_service_date="2027-05-05",
        service_history=(ServiceRecord(date="2026-05-05", notes="Service B, air suspension check", cost=1750),),
        current_mileage=12400,
        condition_log=(ConditionEntry(date="2026-05-06", note="Rear seat massage unit recalibrated"),),
        total_days_rented=73,
        lifetime_revenue=94900,
    ),
)
