"""
Tests for page access decisions, observables and the live access controller.
"""
import pytest

from salesdash.schemas.settings import AppSettings
from salesdash.services.access_service import (
    AccessController,
    AccessState,
    UserProfile,
    decide_access,
    evaluate,
    matching_page,
)
from salesdash.services.observable import DocumentFeed, Observable, combine_latest

from conftest import FakeFirestore


@pytest.fixture
def app_settings():
    return AppSettings()


class TestDecideAccess:

    def test_admin_always_granted(self):
        locked = AppSettings(permissions={"/dashboard": []}, inactivePages=["/dashboard/vendas"])
        assert decide_access("admin", "/dashboard/vendas", locked)
        assert decide_access("admin", "/dashboard/desconhecida", locked)

    def test_role_listed_on_page(self, app_settings):
        assert decide_access("vendedor", "/dashboard/vendas", app_settings)

    def test_role_not_listed(self, app_settings):
        assert not decide_access("vendedor", "/dashboard/relatorios", app_settings)

    def test_root_requires_listed_role(self):
        restricted = AppSettings(permissions={"/dashboard": ["socio"]})
        assert decide_access("socio", "/dashboard", restricted)
        assert not decide_access("vendedor", "/dashboard", restricted)

    def test_inactive_page_denies_non_admin(self):
        settings = AppSettings(inactivePages=["/dashboard/vendas"])
        assert not decide_access("vendedor", "/dashboard/vendas", settings)
        assert not decide_access("vendedor", "/dashboard/vendas/detalhe", settings)

    def test_longest_prefix_wins(self):
        settings = AppSettings(permissions={
            "/dashboard": ["vendedor"],
            "/dashboard/relatorios": ["vendedor"],
            "/dashboard/relatorios/abc": ["socio"],
        })
        assert not decide_access("vendedor", "/dashboard/relatorios/abc", settings)
        assert decide_access("vendedor", "/dashboard/relatorios/vendedores", settings)

    def test_unknown_page_denied(self, app_settings):
        assert not decide_access("socio", "/dashboard/desconhecida", app_settings)

    def test_prefix_matching_respects_segments(self):
        assert matching_page("/dashboard/vendasx", {"/dashboard/vendas": []}) is None
        assert matching_page("/dashboard/vendas/1", {"/dashboard/vendas": []}) == "/dashboard/vendas"

    def test_root_entry_is_not_a_prefix(self):
        assert matching_page("/dashboard", {"/dashboard": []}) == "/dashboard"
        assert matching_page("/dashboard/desconhecida", {"/dashboard": ["socio"]}) is None


class TestProfileRole:

    @pytest.mark.parametrize("stored, claim, expected", [
        ("vendedor", "admin", "vendedor"),
        (None, "financeiro", "financeiro"),
        ("gerente", "socio", "socio"),
        (None, None, "vendedor"),
    ])
    def test_stored_role_before_claim(self, stored, claim, expected):
        profile = UserProfile.from_document("u1", {"role": stored} if stored else None, claim)
        assert profile.role == expected


class TestEvaluate:

    def test_password_change_takes_precedence(self, app_settings):
        profile = UserProfile("u1", "admin", require_password_change=True)
        decision = evaluate("/dashboard", profile, app_settings)
        assert decision.state == AccessState.PASSWORD_CHANGE_REDIRECTING
        assert decision.redirect_to == "/trocar-senha"

    def test_denied_redirects_to_dashboard(self, app_settings):
        decision = evaluate("/dashboard/permissoes", UserProfile("u1", "vendedor"), app_settings)
        assert decision.state == AccessState.DENIED_REDIRECTING
        assert decision.redirect_to == "/dashboard"
        assert decision.allowed is False

    def test_unprotected_path_granted(self, app_settings):
        decision = evaluate("/perfil", UserProfile("u1", "expedicao"), app_settings)
        assert decision.state == AccessState.GRANTED


class TestObservable:

    def test_subscribe_receives_current_value(self):
        seen = []
        source = Observable(1)
        source.subscribe(seen.append)
        source.set(2)
        assert seen == [1, 2]

    def test_release_is_idempotent(self):
        source = Observable()
        subscription = source.subscribe(lambda _: None)
        subscription.release()
        subscription.release()
        assert subscription.released
        assert source.subscriber_count == 0

    def test_combine_latest_waits_for_every_source(self):
        a, b = Observable(), Observable()
        seen = []
        combined = combine_latest(a, b)
        combined.subscribe(seen.append)
        a.set(1)
        assert seen == []
        b.set("x")
        a.set(2)
        assert seen == [(1, "x"), (2, "x")]
        combined.close()
        assert a.subscriber_count == 0 and b.subscriber_count == 0

    def test_document_feed_tracks_document(self):
        db = FakeFirestore()
        ref = db.collection("configuracoes").document("main")
        feed = DocumentFeed(ref, AppSettings.from_document)
        assert feed.value == AppSettings()

        ref.set({"inactivePages": ["/dashboard/taxas"]})
        assert feed.value.inactive_pages == ["/dashboard/taxas"]

        feed.close()
        feed.close()
        assert db.watchers[("configuracoes", "main")] == []


class ProfileFeeds:
    """Profile observables handed to the controller, closable like live feeds."""

    def __init__(self):
        self.feeds = {}
        self.closed = []

    def __call__(self, uid):
        feed = Observable()
        feed.close = lambda: self.closed.append(uid)
        self.feeds[uid] = feed
        return feed


class TestAccessController:

    def setup_method(self):
        self.auth = Observable()
        self.settings = Observable(AppSettings())
        self.profiles = ProfileFeeds()
        self.states = []

    def _controller(self, path):
        controller = AccessController(path, self.auth, self.settings, self.profiles)
        controller.on_change(lambda d: self.states.append(d.state))
        return controller.start()

    def test_starts_checking(self):
        controller = self._controller("/dashboard/vendas")
        assert controller.state == AccessState.CHECKING
        assert controller.is_loading

    def test_signed_out_redirects_to_login(self):
        controller = self._controller("/dashboard/vendas")
        self.auth.set(None)
        assert controller.state == AccessState.UNAUTHENTICATED_REDIRECTING
        assert controller.decision.redirect_to == "/login"

    def test_granted_then_revoked_by_settings(self):
        controller = self._controller("/dashboard/vendas")
        self.auth.set("u1")
        self.profiles.feeds["u1"].set(UserProfile("u1", "vendedor"))
        assert controller.state == AccessState.GRANTED

        self.settings.set(AppSettings(inactivePages=["/dashboard/vendas"]))
        assert controller.state == AccessState.DENIED_REDIRECTING
        assert self.states == [AccessState.GRANTED, AccessState.DENIED_REDIRECTING]

    def test_role_change_recomputes(self):
        controller = self._controller("/dashboard/relatorios")
        self.auth.set("u1")
        self.profiles.feeds["u1"].set(UserProfile("u1", "vendedor"))
        assert controller.state == AccessState.DENIED_REDIRECTING
        self.profiles.feeds["u1"].set(UserProfile("u1", "financeiro"))
        assert controller.state == AccessState.GRANTED

    def test_unchanged_decision_not_renotified(self):
        self._controller("/dashboard/vendas")
        self.auth.set("u1")
        self.profiles.feeds["u1"].set(UserProfile("u1", "vendedor"))
        self.settings.set(AppSettings())
        assert self.states == [AccessState.GRANTED]

    def test_user_switch_closes_previous_profile_feed(self):
        self._controller("/dashboard")
        self.auth.set("u1")
        self.auth.set("u2")
        assert self.profiles.closed == ["u1"]

    def test_close_releases_everything(self):
        controller = self._controller("/dashboard")
        self.auth.set("u1")
        self.profiles.feeds["u1"].set(UserProfile("u1", "vendedor"))
        controller.close()

        assert self.auth.subscriber_count == 0
        assert self.settings.subscriber_count == 0
        assert self.profiles.closed == ["u1"]

        self.settings.set(AppSettings(permissions={"/dashboard": []}))
        assert self.states == [AccessState.GRANTED]
