"""Human-readable summaries of plans and reconcile reports.

Useful for dry-run output and logging.
"""
from typing import Iterable

from ..store.entities import NetworkInterface
from .schema import ProtocolAction, ReconcileReport, ServiceAction, ServicePlan


def _describe_plan(plan: ServicePlan) -> str:
    decision = plan.decision
    service = plan.service

    if decision.action == ServiceAction.DELETE:
        return f"  [-] Drop service {service.label}"

    parts = []
    if decision.enable:
        parts.append("enable service")
    if decision.protocol is not None:
        if decision.protocol.action == ProtocolAction.ADD_IPV6:
            parts.append("add IPv6")
        elif decision.protocol.action == ProtocolAction.MODIFY_IPV6:
            parts.append("enable IPv6")
    return f"  [~] Clone service {service.label}: {', '.join(parts)}"


def summarize_plan(
    plans: list[ServicePlan],
    new_interfaces: Iterable[NetworkInterface] = (),
) -> str:
    """Describe planned changes for a set."""
    new_interfaces = list(new_interfaces)
    changes = [p for p in plans if p.decision.action != ServiceAction.LEAVE]

    if not changes and not new_interfaces:
        return "No changes needed - current set already matches desired state"

    lines = [f"Changes to stage ({len(changes) + len(new_interfaces)} total):", ""]

    for plan in changes:
        lines.append(_describe_plan(plan))

    for interface in new_interfaces:
        name = interface.bsd_name or interface.type_name
        kind = interface.kind.value if interface.kind else interface.type_name
        lines.append(f"  [+] Create service for {name} ({kind}) with IPv6")

    kept = [p.service.label for p in plans if p.decision.action == ServiceAction.LEAVE]
    if kept:
        lines.append("")
        lines.append(f"Unchanged: {', '.join(kept)}")

    return "\n".join(lines)


def summarize_report(report: ReconcileReport) -> str:
    """Describe what a reconcile run staged."""
    network_set = report.network_set
    lines = []

    if network_set is not None:
        lines.append(
            f"Staged set '{network_set.name}' ({network_set.id}) "
            f"from {report.source_set_id}"
        )

    if report.prune.total_removed:
        lines.append(
            f"Pruned {len(report.prune.removed_sets)} sets, "
            f"{len(report.prune.removed_services)} services"
        )

    for original, clone in report.cloned_services.items():
        lines.append(f"  [~] {original} -> {clone}")
    for service_id in report.deleted_services:
        lines.append(f"  [-] {service_id}")
    for service_id in report.provisioned_services:
        lines.append(f"  [+] {service_id}")

    if report.no_change:
        lines.append("No service changes were needed")

    if network_set is not None:
        lines.append(f"Service order: {', '.join(network_set.priority_order) or '(empty)'}")
    if report.made_current:
        lines.append("Set marked as current")

    return "\n".join(lines)
