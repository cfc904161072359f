"""Presentation helpers.

Everything here is a pure function of the inventory state: card models
for the fleet grid, the hub detail model, fleet totals, and a plain-text
rendering used by the terminal dashboard script.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from datetime import date

from pydantic import BaseModel, ConfigDict

from fleethub._constants import SERVICE_DUE_WINDOW_MONTHS
from fleethub.models.vehicle import ConditionEntry, ServiceRecord, Vehicle, VehicleStatus
from fleethub.state.phase import SyncPhase
from fleethub.state.store import InventoryView


def add_months(day: date, months: int) -> date:
    """Calendar month arithmetic, clamping to the last day of the month."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def is_service_due_soon(vehicle: Vehicle, today: date) -> bool:
    """True when the next service is on or before two months from *today*.

    Overdue services count as due. A vehicle without a parsable
    ``nextServiceDate`` is never flagged.
    """
    next_service = vehicle.next_service_on
    if next_service is None:
        return False
    return next_service <= add_months(today, SERVICE_DUE_WINDOW_MONTHS)


def format_money(amount: float) -> str:
    if float(amount).is_integer():
        return f"${amount:,.0f}"
    return f"${amount:,.2f}"


class VehicleCard(BaseModel):
    model_config = ConfigDict(frozen=True)

    vehicle_id: str
    title: str
    subtitle: str
    price_label: str
    image_url: str
    status: VehicleStatus
    status_label: str
    toggle_label: str
    service_due_soon: bool


class VehicleDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    vehicle_id: str
    title: str
    status: VehicleStatus
    current_mileage: int
    last_service_date: str
    next_service_date: str
    service_due_soon: bool
    total_days_rented: int
    lifetime_revenue: float
    average_daily_revenue: float
    total_service_cost: float
    service_history: tuple[ServiceRecord, ...]
    condition_log: tuple[ConditionEntry, ...]


class FleetSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = 0
    available: int = 0
    rented: int = 0
    service_due_soon: int = 0
    lifetime_revenue: float = 0.0
    total_days_rented: int = 0


def build_card(vehicle: Vehicle, today: date) -> VehicleCard:
    return VehicleCard(
        vehicle_id=vehicle.id,
        title=vehicle.name,
        subtitle=f"{vehicle.year} · {vehicle.vehicle_type}" if vehicle.vehicle_type else str(vehicle.year),
        price_label=f"{format_money(vehicle.price_per_day)}/day",
        image_url=vehicle.image_url,
        status=vehicle.status,
        status_label=vehicle.status.value,
        toggle_label="Mark as Rented" if vehicle.is_available else "Mark as Available",
        service_due_soon=is_service_due_soon(vehicle, today),
    )


def build_cards(vehicles: Iterable[Vehicle], today: date) -> list[VehicleCard]:
    return [build_card(vehicle, today) for vehicle in vehicles]


def build_detail(vehicle: Vehicle, today: date) -> VehicleDetail:
    """Hub model. Logs are listed newest first; storage order is untouched."""
    average = vehicle.lifetime_revenue / vehicle.total_days_rented if vehicle.total_days_rented else 0.0
    return VehicleDetail(
        vehicle_id=vehicle.id,
        title=f"{vehicle.name} ({vehicle.year})",
        status=vehicle.status,
        current_mileage=vehicle.current_mileage,
        last_service_date=vehicle.last_service_date,
        next_service_date=vehicle.next_service_date,
        service_due_soon=is_service_due_soon(vehicle, today),
        total_days_rented=vehicle.total_days_rented,
        lifetime_revenue=vehicle.lifetime_revenue,
        average_daily_revenue=round(average, 2),
        total_service_cost=sum(record.cost for record in vehicle.service_history),
        service_history=tuple(reversed(vehicle.service_history)),
        condition_log=tuple(reversed(vehicle.condition_log)),
    )


def summarize_fleet(vehicles: Iterable[Vehicle], today: date) -> FleetSummary:
    items = list(vehicles)
    return FleetSummary(
        total=len(items),
        available=sum(1 for v in items if v.status is VehicleStatus.AVAILABLE),
        rented=sum(1 for v in items if v.status is VehicleStatus.RENTED),
        service_due_soon=sum(1 for v in items if is_service_due_soon(v, today)),
        lifetime_revenue=sum(v.lifetime_revenue for v in items),
        total_days_rented=sum(v.total_days_rented for v in items),
    )


# ── text rendering ───────────────────────────────────────────


def _render_detail(detail: VehicleDetail) -> list[str]:
    lines = [
        "",
        f"== {detail.title} [{detail.status.value}] ==",
        f"  Mileage: {detail.current_mileage:,} km",
        f"  Last service: {detail.last_service_date or '-'}   Next service: {detail.next_service_date or '-'}"
        + ("  (due soon)" if detail.service_due_soon else ""),
        f"  Days rented: {detail.total_days_rented}   Revenue: {format_money(detail.lifetime_revenue)}"
        f"   Avg/day: {format_money(detail.average_daily_revenue)}",
        f"  Service spend: {format_money(detail.total_service_cost)}",
        "  Service history:",
    ]
    if not detail.service_history:
        lines.append("    (none)")
    for record in detail.service_history:
        lines.append(f"    {record.date}  {format_money(record.cost):>10}  {record.notes}")
    lines.append("  Condition log:")
    if not detail.condition_log:
        lines.append("    (none)")
    for entry in detail.condition_log:
        lines.append(f"    {entry.date}  {entry.note}")
    return lines


def render_dashboard(view: InventoryView, today: date) -> str:
    """Plain-text dashboard for terminals and logs."""
    if view.phase is SyncPhase.ERROR:
        return f"Error: {view.error_message or 'unknown error'}"
    if view.is_loading:
        return "Loading fleet..."

    summary = summarize_fleet(view.vehicles, today)
    lines = [
        f"Fleet: {summary.total} vehicles  |  {summary.available} available  |  {summary.rented} rented"
        f"  |  {summary.service_due_soon} service due soon  |  revenue {format_money(summary.lifetime_revenue)}",
        "",
    ]
    for card in build_cards(view.vehicles, today):
        flag = " [service due soon]" if card.service_due_soon else ""
        lines.append(
            f"{card.vehicle_id:<22} {card.title:<28} {card.subtitle:<26} {card.price_label:>12}  "
            f"{card.status_label:<9}{flag}"
        )
    if view.selected is not None:
        lines.extend(_render_detail(build_detail(view.selected, today)))
    return "\n".join(lines)
