"""Tests for the working template and project DNA stages."""

import json
import os
from datetime import date

import pytest

from wizard.models.document import ProjectDocument
from wizard.models.project import Project
from wizard.schemas.citation import CitationType
from wizard.schemas.project import FinalizeRequest
from wizard.schemas.template import ItemCreate
from wizard.services.citations import find_latest, format_citation
from wizard.services.ledger import LedgerConflictError
from wizard.services.review import health_score
from wizard.services.timeline import schedule_inputs_from_ledger


def ledger_of(service, project):
    ledger, _ = service.ledger.get_ledger(project.project_id)
    return ledger


def test_create_project_geocodes_address(wizard_service, project, geocoder):
    location = find_latest(ledger_of(wizard_service, project), CitationType.LOCATION)

    assert geocoder.calls == ["100 Queen St W, Toronto"]
    assert location.metadata["coordinates"] == {"lat": 43.6532, "lng": -79.3832}


def test_rename_supersedes_name(wizard_service, project, test_db):
    wizard_service.rename(project.project_id, "Basement Reno", expected_version=1)

    assert find_latest(ledger_of(wizard_service, project), CitationType.PROJECT_NAME).answer == "Basement Reno"
    assert test_db.query(Project).one().name == "Basement Reno"


def test_unknown_work_type_rejected(wizard_service, project):
    with pytest.raises(ValueError):
        wizard_service.set_work_type(project.project_id, "space_elevator")


def test_template_requires_locked_gfa(wizard_service, project):
    with pytest.raises(ValueError):
        wizard_service.start_template(project.project_id, "flooring")


def test_lock_gfa_rejects_bad_input(wizard_service, project):
    with pytest.raises(ValueError):
        wizard_service.lock_gfa(project.project_id, "lots")


def test_start_flooring_template(wizard_service, project):
    """Test the flooring template scales from GFA with waste applied."""
    wizard_service.lock_gfa(project.project_id, "1000 sq ft")
    state = wizard_service.start_template(project.project_id, "flooring")

    names = [i.name for i in state.items]
    assert names == ["Hardwood Flooring", "Underlayment", "Transition Strips", "Installation Labor", "Baseboards"]
    hardwood = state.items[0]
    assert hardwood.base_quantity == 1000
    assert hardwood.quantity == 1100
    assert state.items[2].quantity == 5
    assert state.gfa_sqft == 1000
    assert state.breakdown.labor_total == pytest.approx(4500.0)


def test_every_mutation_persists_rollup(wizard_service, project):
    """Test cost columns track each edit."""
    wizard_service.lock_gfa(project.project_id, "100 sq ft")
    wizard_service.start_template(project.project_id, "custom")
    summary = wizard_service.ledger.get_summary(project.project_id)
    # 110 * 5 + 100 * 3
    assert summary.total_cost == pytest.approx(850.0)

    state = wizard_service.add_item(project.project_id, ItemCreate(name="Trim", base_quantity=10, unit_price=2))
    assert summary.total_cost == pytest.approx(872.0)

    wizard_service.set_markup(project.project_id, 10)
    assert summary.total_cost == pytest.approx(959.2)

    wizard_service.set_site_condition(project.project_id, "demolition")
    assert summary.cost_breakdown["demolition_cost"] == pytest.approx(250.0)

    wizard_service.delete_item(project.project_id, state.items[-1].id)
    assert summary.material_cost == pytest.approx(550.0)

    wizard_service.set_waste(project.project_id, 0)
    assert summary.material_cost == pytest.approx(500.0)
    assert summary.waste_percent == 0


def test_update_item_via_service(wizard_service, project):
    wizard_service.lock_gfa(project.project_id, "100 sq ft")
    wizard_service.start_template(project.project_id, "custom")

    state = wizard_service.update_item(project.project_id, "2", {"unit_price": 4})

    assert state.items[1].total_price == pytest.approx(400.0)
    with pytest.raises(KeyError):
        wizard_service.update_item(project.project_id, "nope", {"unit_price": 4})


def test_lock_template_cites_net_total(wizard_service, project, storage, test_db):
    """Test TEMPLATE_LOCK value is pre-tax and the snapshot is mirrored."""
    wizard_service.lock_gfa(project.project_id, "100 sq ft")
    wizard_service.start_template(project.project_id, "custom")

    trade, lock, budget, material = wizard_service.lock_template(project.project_id)

    assert trade.cite_type == CitationType.TRADE_SELECTION
    assert trade.answer == "Custom"
    assert lock.value == pytest.approx(850.0)
    assert lock.metadata["tax_rate"] == 0.13
    assert lock.metadata["gross_total"] == pytest.approx(960.5)
    assert len(lock.metadata["items"]) == 2
    assert budget.cite_type == CitationType.BUDGET
    assert budget.value == pytest.approx(850.0)
    assert material.value == pytest.approx(550.0)
    assert [m["name"] for m in material.metadata["materials"]] == ["Custom Material"]

    document = test_db.query(ProjectDocument).one()
    assert document.kind == "template_snapshot"
    assert document.citation_id == lock.id
    snapshot = json.loads(storage.read(document.file_path))
    assert snapshot["breakdown"]["net_total"] == pytest.approx(850.0)


def test_lock_template_snapshot_failure_keeps_citations(wizard_service, project, storage, monkeypatch):
    wizard_service.lock_gfa(project.project_id, "100 sq ft")
    wizard_service.start_template(project.project_id, "custom")

    def broken_save(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(storage, "save_json", broken_save)
    wizard_service.lock_template(project.project_id)

    assert find_latest(ledger_of(wizard_service, project), CitationType.TEMPLATE_LOCK) is not None


def test_lock_template_requires_items(wizard_service, project):
    with pytest.raises(ValueError):
        wizard_service.lock_template(project.project_id)


def test_lock_template_stale_version(wizard_service, project):
    wizard_service.lock_gfa(project.project_id, "100 sq ft")
    wizard_service.start_template(project.project_id, "custom")

    with pytest.raises(LedgerConflictError):
        wizard_service.lock_template(project.project_id, expected_version=1)


def test_finalize_dna_with_demolition(wizard_service, project, test_db):
    """Test finalization cites site, demolition, timeline, end date and DNA."""
    wizard_service.lock_gfa(project.project_id, "200 sq ft")
    wizard_service.start_template(project.project_id, "custom")
    wizard_service.set_site_condition(project.project_id, "demolition")
    wizard_service.set_team_size(project.project_id, "small")

    created = wizard_service.finalize_dna(project.project_id, FinalizeRequest(
        timeline="scheduled",
        scheduled_date=date(2026, 3, 2),
        end_date=date(2026, 4, 1),
    ))

    types = [c.cite_type for c in created]
    assert types == [
        CitationType.SITE_CONDITION,
        CitationType.DEMOLITION_PRICE,
        CitationType.TIMELINE,
        CitationType.END_DATE,
        CitationType.DNA_FINALIZED,
    ]
    site, demolition, timeline, end, dna = created
    assert site.metadata["demolition_cost"] == pytest.approx(500.0)
    assert demolition.value == 2.50
    assert timeline.metadata["start_date"] == "2026-03-02"
    assert end.value == "2026-04-01"
    assert dna.value == pytest.approx(220 * 5 + 200 * 3 + 500)
    assert dna.metadata["summary"]["team_size"] == "small"
    assert dna.metadata["summary"]["end_date"] == "2026-04-01"
    assert test_db.query(Project).one().status == "active"


def test_finalize_asap_uses_today(wizard_service, project):
    wizard_service.lock_gfa(project.project_id, "100 sq ft")

    created = wizard_service.finalize_dna(project.project_id, FinalizeRequest(), today=date(2026, 1, 5))

    assert [c.cite_type for c in created] == [
        CitationType.SITE_CONDITION,
        CitationType.TIMELINE,
        CitationType.DNA_FINALIZED,
    ]
    assert created[1].answer == "ASAP"
    assert created[1].metadata["start_date"] == "2026-01-05"


def test_finalize_rejects_bad_dates(wizard_service, project):
    wizard_service.lock_gfa(project.project_id, "100 sq ft")

    with pytest.raises(ValueError):
        wizard_service.finalize_dna(project.project_id, FinalizeRequest(timeline="scheduled"))
    with pytest.raises(ValueError):
        wizard_service.finalize_dna(project.project_id, FinalizeRequest(
            end_date=date(2026, 1, 1),
        ), today=date(2026, 1, 5))


def test_snapshot_path_layout(wizard_service, project, storage):
    wizard_service.lock_gfa(project.project_id, "100 sq ft")
    wizard_service.start_template(project.project_id, "painting")
    wizard_service.lock_template(project.project_id)

    project_dir = os.path.join(storage.root, str(project.project_id))
    assert os.listdir(project_dir) == ["template_lock_6.json"]


def test_amend_gfa_reparses_and_recomputes(wizard_service, project):
    """Test a corrected GFA stays numeric and refreshes the stored rollup."""
    gfa = wizard_service.lock_gfa(project.project_id, "100 sq ft")
    wizard_service.start_template(project.project_id, "custom")
    wizard_service.set_site_condition(project.project_id, "demolition")
    summary = wizard_service.ledger.get_summary(project.project_id)
    assert summary.cost_breakdown["demolition_cost"] == pytest.approx(250.0)

    amended, version = wizard_service.amend_citation(project.project_id, gfa.id, "200 sq ft", expected_version=2)

    assert version == 3
    assert amended.value == 200
    assert amended.metadata["supersedes"] == gfa.id
    assert summary.cost_breakdown["demolition_cost"] == pytest.approx(500.0)
    # 110 * 5 + 100 * 3 + 200 * 2.50
    assert summary.total_cost == pytest.approx(1350.0)

    state = wizard_service.start_template(project.project_id, "custom")
    assert state.gfa_sqft == 200


def test_amend_gfa_rejects_unreadable_area(wizard_service, project):
    gfa = wizard_service.lock_gfa(project.project_id, "100 sq ft")

    with pytest.raises(ValueError):
        wizard_service.amend_citation(project.project_id, gfa.id, "about a hundred", expected_version=2)

    assert find_latest(ledger_of(wizard_service, project), CitationType.GFA_LOCK).value == 100


def test_refinalize_clear_site_supersedes_demolition(wizard_service, project):
    """Test moving to a clear site zeroes the earlier demolition price."""
    wizard_service.lock_gfa(project.project_id, "100 sq ft")
    wizard_service.start_template(project.project_id, "custom")
    wizard_service.set_site_condition(project.project_id, "demolition")
    wizard_service.finalize_dna(project.project_id, FinalizeRequest(
        timeline="scheduled",
        scheduled_date=date(2027, 1, 1),
        end_date=date(2027, 2, 1),
    ))

    wizard_service.set_site_condition(project.project_id, "clear")
    created = wizard_service.finalize_dna(project.project_id, FinalizeRequest(
        timeline="scheduled",
        scheduled_date=date(2027, 3, 1),
        end_date=date(2027, 4, 1),
    ))

    assert [c.cite_type for c in created][:2] == [CitationType.SITE_CONDITION, CitationType.DEMOLITION_PRICE]
    ledger = ledger_of(wizard_service, project)
    demolition = find_latest(ledger, CitationType.DEMOLITION_PRICE)
    assert demolition.value == 0.0
    assert format_citation(demolition) == "Not required (clear site)"

    start, end, has_demolition, _ = schedule_inputs_from_ledger(ledger, None)
    assert (start, end) == (date(2027, 3, 1), date(2027, 4, 1))
    assert not has_demolition


def test_refinalize_checks_cited_end_date(wizard_service, project, test_db):
    """Test a later start cannot leave an earlier cited end date live."""
    wizard_service.lock_gfa(project.project_id, "100 sq ft")
    wizard_service.finalize_dna(project.project_id, FinalizeRequest(
        timeline="scheduled",
        scheduled_date=date(2027, 1, 1),
        end_date=date(2027, 2, 1),
    ))
    _, version = wizard_service.ledger.get_ledger(project.project_id)

    with pytest.raises(ValueError):
        wizard_service.finalize_dna(project.project_id, FinalizeRequest(
            timeline="scheduled",
            scheduled_date=date(2027, 3, 1),
        ))
    assert wizard_service.ledger.get_ledger(project.project_id)[1] == version

    created = wizard_service.finalize_dna(project.project_id, FinalizeRequest(
        timeline="scheduled",
        scheduled_date=date(2027, 1, 10),
    ))
    assert created[-1].metadata["summary"]["end_date"] == "2027-02-01"
    start, end, _, _ = schedule_inputs_from_ledger(ledger_of(wizard_service, project), None)
    assert (start, end) == (date(2027, 1, 10), date(2027, 2, 1))


def test_completed_solo_project_health(wizard_service, project):
    """Test a finished clear-site project only misses the demolition price."""
    wizard_service.lock_gfa(project.project_id, "100 sq ft")
    wizard_service.start_template(project.project_id, "custom")
    wizard_service.lock_template(project.project_id)
    wizard_service.finalize_dna(project.project_id, FinalizeRequest(
        timeline="scheduled",
        scheduled_date=date(2027, 1, 1),
        end_date=date(2027, 2, 1),
    ))

    result = health_score(ledger_of(wizard_service, project), team_member_count=0)

    # 13.5 of 14
    assert result.score == 96
    assert result.health_status == "excellent"
    assert result.missing_pillars == ["demolition_price"]
