from __future__ import annotations

import pytest
from playwright.sync_api import Error as PlaywrightError

from mjp_export.navigator import (
    _JS_INSPECT_RECORD,
    _SUCCESS_ALERT,
    _SUCCESS_SPAN,
    SUCCESS_TEXT,
    PortalNavigator,
)
from mjp_export.waiter import MutationSignal, PollSignal
from tests.fakes import FakeElement, FakePage

UUID = "7d3e-uuid"
SAVE_ALL = f'[data-uuid="{UUID}"] .btn.save-all-action:not([disabled])'
PRUEFVERMERK = f'[data-uuid="{UUID}"] ozg-popupwindow[data-pagetitle="Prüfvermerk"]'
EINGANG = f'[data-uuid="{UUID}"] ozg-popupwindow[data-pagetitle="Eingangsbestätigung"]'


def test_save_all_button_is_scoped_to_message_and_enabled_only() -> None:
    button = FakeElement("save-all")
    page = FakePage(elements={SAVE_ALL: button})

    assert PortalNavigator(page).save_all_button(UUID) is button
    assert page.calls == [("query_selector", SAVE_ALL)]


def test_save_all_button_missing_while_loading() -> None:
    page = FakePage()
    assert PortalNavigator(page).save_all_button(UUID) is None


def test_success_notice_prefers_alert_component() -> None:
    alert = FakeElement("alert")
    page = FakePage(elements={_SUCCESS_ALERT: alert, _SUCCESS_SPAN: FakeElement("span")})

    assert PortalNavigator(page).success_notice() is alert
    assert page.calls == [("query_selector", _SUCCESS_ALERT)]


def test_success_notice_falls_back_to_message_span() -> None:
    span = FakeElement("span")
    page = FakePage(elements={_SUCCESS_SPAN: span})

    assert PortalNavigator(page).success_notice() is span
    assert page.calls == [("query_selector", _SUCCESS_ALERT), ("query_selector", _SUCCESS_SPAN)]


def test_success_selectors_match_download_text() -> None:
    assert _SUCCESS_ALERT == f'ozg-alert[data-message*="{SUCCESS_TEXT}"]'
    assert _SUCCESS_SPAN == f'.alert-message span:has-text("{SUCCESS_TEXT}")'


def test_success_notice_absent() -> None:
    assert PortalNavigator(FakePage()).success_notice() is None


def test_proof_button_prefers_pruefvermerk() -> None:
    pruef = FakeElement("pruefvermerk")
    page = FakePage(elements={PRUEFVERMERK: pruef, EINGANG: FakeElement("eingang")})

    assert PortalNavigator(page).proof_button(UUID) is pruef
    assert page.calls == [("query_selector", PRUEFVERMERK)]


def test_proof_button_falls_back_to_eingangsbestaetigung() -> None:
    eingang = FakeElement("eingang")
    page = FakePage(elements={EINGANG: eingang})

    assert PortalNavigator(page).proof_button(UUID) is eingang
    assert page.calls == [("query_selector", PRUEFVERMERK), ("query_selector", EINGANG)]


def test_proof_button_absent() -> None:
    page = FakePage()
    assert PortalNavigator(page).proof_button(UUID) is None
    assert len(page.calls) == 2


def test_click_dispatches_mouse_sequence_in_order() -> None:
    button = FakeElement("save-all")

    PortalNavigator(FakePage()).click(button)

    assert button.events == [
        ("save-all", "mousedown"),
        ("save-all", "mouseup"),
        ("save-all", "click"),
    ]


def test_inspect_record_passes_uuid_to_page() -> None:
    record = {"creationTime": "2024-02-29T10:00:00", "transmitter": "OLG Hamm"}
    page = FakePage(scripts={_JS_INSPECT_RECORD: lambda uuid: record if uuid == UUID else None})

    assert PortalNavigator(page).inspect_record(UUID) == record
    assert page.calls == [("evaluate", _JS_INSPECT_RECORD, UUID)]


@pytest.mark.parametrize(
    "error",
    [PlaywrightError("Execution context was destroyed"), RuntimeError("comp.getTransmitter is broken")],
)
def test_inspect_record_page_errors_yield_none(error: Exception) -> None:
    page = FakePage(scripts={_JS_INSPECT_RECORD: error})
    assert PortalNavigator(page).inspect_record(UUID) is None


def test_routing_goes_through_location_hash() -> None:
    page = FakePage(scripts={"() => window.location.hash": "#/postausgang"})
    navigator = PortalNavigator(page)

    assert navigator.current_location() == "#/postausgang"
    navigator.go_to("#/postausgang/detail/abc")

    assert page.calls[-1] == ("evaluate", "h => { window.location.hash = h; }", "#/postausgang/detail/abc")


def test_settle_skips_zero_delay() -> None:
    page = FakePage()
    navigator = PortalNavigator(page)

    navigator.settle(0)
    navigator.settle(600)

    assert page.calls == [("wait_for_timeout", 600)]


def test_signals_are_bound_to_the_page() -> None:
    page = FakePage()
    navigator = PortalNavigator(page)

    mutation = navigator.mutation_signal()
    poll = navigator.poll_signal(250)

    assert isinstance(mutation, MutationSignal) and mutation.page is page
    assert isinstance(poll, PollSignal) and poll.interval_ms == 250
    poll.wait_for_signal(10_000)
    assert page.calls == [("wait_for_timeout", 250)]
