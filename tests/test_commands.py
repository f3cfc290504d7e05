import unittest

from ssdeck.commands import (
    Delay, GoToPage, Hotkey, Invalid, Multi, NextPage, Noop, ObsAction, ObsCommand, OpenUrl,
    PrevPage, Shell, TwitchAction, TwitchCommand, TypeText, Widget, WidgetKind,
    parse_command, parse_hotkey, widget_of,
)
from ssdeck.errors import CommandParseError


class TestParseCommand(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(parse_command(""), Noop())
        self.assertEqual(parse_command("   "), Noop())

    def test_navigation(self):
        self.assertEqual(parse_command("__NEXT_PAGE__"), NextPage())
        self.assertEqual(parse_command("__PREV_PAGE__"), PrevPage())
        self.assertEqual(parse_command("__PAGE_0__"), GoToPage(0))
        self.assertEqual(parse_command("__PAGE_12__"), GoToPage(12))

    def test_page_without_number_is_still_navigation(self):
        self.assertEqual(parse_command("__PAGE_home__"), GoToPage(None))

    def test_url_and_text(self):
        self.assertEqual(parse_command("__URL_https://example.com/a?b=c"), OpenUrl("https://example.com/a?b=c"))
        self.assertEqual(parse_command("__TYPE_ hello  world "), TypeText(" hello  world "))

    def test_hotkey(self):
        self.assertEqual(parse_command("__KEY_ctrl+shift+s"), Hotkey(frozenset({"ctrl", "shift"}), "s"))

    def test_bad_hotkey_is_invalid_not_shell(self):
        command = parse_command("__KEY_ctrl+bogus")
        self.assertIsInstance(command, Invalid)
        self.assertIn("bogus", command.reason)

    def test_widgets(self):
        for kind in WidgetKind:
            if kind is WidgetKind.TIMER:
                continue
            self.assertEqual(parse_command(kind.value), Widget(kind))
        self.assertEqual(parse_command("__TIMER_5__"), Widget(WidgetKind.TIMER, 5))
        self.assertTrue(parse_command("__TIMER_5__").interactive)
        self.assertFalse(parse_command("__CLOCK__").interactive)

    def test_malformed_widget_falls_back_to_shell(self):
        self.assertEqual(parse_command("__TIMER_x__"), Shell("__TIMER_x__"))
        self.assertEqual(parse_command("__TIMER_0__"), Shell("__TIMER_0__"))
        self.assertEqual(parse_command("__CLOCKS__"), Shell("__CLOCKS__"))

    def test_obs(self):
        self.assertEqual(parse_command("__OBS_STREAM__"), ObsCommand(ObsAction.STREAM))
        self.assertEqual(parse_command("__OBS_MUTE__"), ObsCommand(ObsAction.MUTE))
        self.assertEqual(parse_command("__OBS_SCENE_Just Chatting"), ObsCommand(ObsAction.SCENE, "Just Chatting"))

    def test_twitch(self):
        self.assertEqual(parse_command("__TWITCH_CLIP__"), TwitchCommand(TwitchAction.CLIP))
        self.assertEqual(parse_command("__TWITCH_AD_60__"), TwitchCommand(TwitchAction.AD, "60"))
        self.assertEqual(parse_command("__TWITCH_CHAT_hi chat"), TwitchCommand(TwitchAction.CHAT, "hi chat"))

    def test_delay(self):
        self.assertEqual(parse_command("__DELAY_200"), Delay(200))
        self.assertEqual(parse_command("__DELAY_200__"), Delay(200))

    def test_shell(self):
        self.assertEqual(parse_command("firefox"), Shell("firefox"))
        self.assertEqual(parse_command("playerctl play-pause"), Shell("playerctl play-pause"))

    def test_case_sensitive(self):
        self.assertEqual(parse_command("__next_page__"), Shell("__next_page__"))

    def test_prefix_without_payload_is_shell(self):
        self.assertEqual(parse_command("__URL_"), Shell("__URL_"))


class TestMulti(unittest.TestCase):
    def test_steps_in_order(self):
        command = parse_command("__MULTI_firefox;;__DELAY_200;;__KEY_ctrl+t")
        self.assertEqual(command, Multi((Shell("firefox"), Delay(200), Hotkey(frozenset({"ctrl"}), "t"))))

    def test_empty_steps_dropped(self):
        self.assertEqual(len(parse_command("__MULTI_a;;;;b;;").steps), 2)

    def test_nested_multi_is_invalid(self):
        command = parse_command("__MULTI_a;;__MULTI_b")
        self.assertEqual(command.steps[0], Shell("a"))
        self.assertIsInstance(command.steps[1], Invalid)

    def test_multi_may_navigate(self):
        self.assertEqual(parse_command("__MULTI___NEXT_PAGE__;;__CLOCK__").steps,
                         (NextPage(), Widget(WidgetKind.CLOCK)))


class TestHotkeys(unittest.TestCase):
    def test_aliases(self):
        self.assertEqual(parse_hotkey("Control+Win+PgUp"), Hotkey(frozenset({"ctrl", "super"}), "page_up"))

    def test_vocabulary(self):
        for combo, key in (("f13", "f13"), ("volumeup", "media_volume_up"), ("num5", "kp_5"),
                           ("numenter", "kp_enter"), ("esc", "esc"), ("7", "7"), ("super", "super")):
            self.assertEqual(parse_hotkey(combo).key, key)

    def test_key_in_modifier_position(self):
        with self.assertRaises(CommandParseError):
            parse_hotkey("a+b")

    def test_empty_token(self):
        with self.assertRaises(CommandParseError):
            parse_hotkey("ctrl++s")


class TestWidgetOf(unittest.TestCase):
    def test_widget_of(self):
        self.assertEqual(widget_of("__CPU__"), Widget(WidgetKind.CPU))
        self.assertIsNone(widget_of("firefox"))
        self.assertIsNone(widget_of(""))


if __name__ == '__main__':
    unittest.main()
