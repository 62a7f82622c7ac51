"""
状态容器测试
"""

from datetime import date

import pytest

from tianji.core.models import FortuneResult, Tab
from tianji.core.state import Action, AppState, Reading, SessionState


@pytest.fixture
def reading(fortune_payload) -> Reading:
    return Reading(tab=Tab.FORTUNE, data=FortuneResult.model_validate(fortune_payload))


class TestAppState:

    def test_defaults(self):
        state = AppState()
        assert state.active_tab == Tab.FORTUNE
        assert not state.loading
        assert not state.speaking
        assert state.result is None
        assert state.alert_message is None
        assert state.target_date == date.today().isoformat()
        assert state.partner.gender == "女"

    def test_user_by_role(self):
        state = AppState()
        assert state.user("primary") is state.primary
        assert state.user("partner") is state.partner


class TestSessionState:

    def test_switch_tab(self):
        session = SessionState()
        session.switch_tab(Tab.COMPATIBILITY)
        assert session.state.active_tab == Tab.COMPATIBILITY
        session.switch_tab("fortune")
        assert session.state.active_tab == Tab.FORTUNE

    def test_update_user(self):
        session = SessionState()
        session.update_user("partner", name="李四", birth_date="1992-02-02")
        assert session.state.partner.name == "李四"
        assert session.state.partner.gender == "女"
        assert session.state.primary.name == ""

    def test_update_user_unknown_role(self):
        with pytest.raises(ValueError):
            SessionState().update_user("stranger", name="王五")

    def test_submit_cycle(self, reading):
        session = SessionState()
        assert session.begin_submit()
        assert session.state.loading
        assert not session.begin_submit()

        session.finish_submit(reading)
        assert not session.state.loading
        assert session.state.result is reading

    def test_begin_submit_clears_previous_result(self, reading):
        session = SessionState(AppState(result=reading))
        session.begin_submit()
        assert session.state.result is None

    def test_fail_submit(self):
        session = SessionState()
        session.begin_submit()
        session.fail_submit("起卦失败，请稍后再试。")
        assert not session.state.loading
        assert session.state.result is None
        assert session.state.alert_message == "起卦失败，请稍后再试。"

    def test_speak_requires_result(self, reading):
        session = SessionState()
        assert not session.begin_speak()

        session = SessionState(AppState(result=reading))
        assert session.begin_speak()
        assert session.state.speaking
        assert not session.begin_speak()

    def test_finish_speak_with_alert(self, reading):
        session = SessionState(AppState(result=reading))
        session.begin_speak()
        session.finish_speak("大师今日静修，无法言传。")
        assert not session.state.speaking
        assert session.state.alert_message == "大师今日静修，无法言传。"

    def test_alert_and_dismiss(self):
        session = SessionState()
        session.alert("请补全您的姓名与生辰。")
        assert session.state.alert_message
        session.dismiss_alert()
        assert session.state.alert_message is None

    def test_reset_keeps_form(self, reading):
        session = SessionState(AppState(result=reading))
        session.update_user("primary", name="张三")
        session.reset()
        assert session.state.result is None
        assert session.state.primary.name == "张三"

    def test_listeners_get_old_and_new(self):
        session = SessionState()
        seen = []
        session.add_listener(lambda action, old, new: seen.append((action, old.active_tab, new.active_tab)))

        session.switch_tab(Tab.COMPATIBILITY)

        assert seen == [(Action.SWITCH_TAB, Tab.FORTUNE, Tab.COMPATIBILITY)]

    def test_listener_errors_are_contained(self):
        session = SessionState()

        def broken(action, old, new):
            raise RuntimeError("listener bug")

        session.add_listener(broken)
        session.set_target_date("2024-05-20")
        assert session.state.target_date == "2024-05-20"

        session.remove_listener(broken)
        session.remove_listener(broken)
