"""Tests for apsara/system_tools.py with the desktop libraries mocked."""

import base64
import time
from unittest.mock import MagicMock, patch

import pytest

from apsara import system_tools
from apsara.shell import ShellCommandError, ShellTimeoutError

KEYBOARD_KEYS = ["enter", "esc", "tab", "ctrl", "shift", "alt", "command", "c", "s", "t", "v", "pageup"]


@pytest.fixture
def gui():
    fake = MagicMock()
    fake.KEYBOARD_KEYS = KEYBOARD_KEYS
    with patch("apsara.system_tools._gui", return_value=fake):
        yield fake


@pytest.fixture
def clipboard():
    with patch("apsara.system_tools.pyperclip") as fake:
        yield fake


class TestKeyCombos:

    def test_single_key_alias(self):
        assert system_tools.parse_key_combo("Return", KEYBOARD_KEYS) == ["enter"]

    def test_combo(self):
        assert system_tools.parse_key_combo("Control+Shift+t", KEYBOARD_KEYS) == ["ctrl", "shift", "t"]

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown key: hyper"):
            system_tools.parse_key_combo("hyper+s", KEYBOARD_KEYS)

    def test_empty(self):
        with pytest.raises(ValueError):
            system_tools.parse_key_combo(" + ", KEYBOARD_KEYS)


class TestValidateComputerUse:

    def test_click_requires_coordinates(self):
        with pytest.raises(ValueError, match="x and y"):
            system_tools.validate_computer_use("click")

    def test_unknown_action(self):
        with pytest.raises(ValueError, match="Unknown action"):
            system_tools.validate_computer_use("drag", x=1, y=1)

    def test_type_requires_text(self):
        with pytest.raises(ValueError, match="requires text"):
            system_tools.validate_computer_use("type")

    def test_non_numeric_coordinates(self):
        with pytest.raises(ValueError):
            system_tools.validate_computer_use("move", x="left", y=3)

    def test_scroll_needs_nothing(self):
        system_tools.validate_computer_use("scroll")


class TestPerformAction:

    def test_click(self, gui):
        system_tools.perform_action("click", x=10, y=20)

        gui.click.assert_called_once_with(10, 20)

    def test_double_and_right_click(self, gui):
        system_tools.perform_action("double_click", x=1, y=2)
        system_tools.perform_action("right_click", x=3, y=4)

        gui.doubleClick.assert_called_once_with(1, 2)
        gui.rightClick.assert_called_once_with(3, 4)

    def test_type_text_starting_with_dash(self, gui):
        system_tools.perform_action("type", text="--help me")

        gui.write.assert_called_once_with("--help me", interval=0.02)

    def test_single_key(self, gui):
        system_tools.perform_action("key", key="Escape")

        gui.press.assert_called_once_with("esc")
        gui.hotkey.assert_not_called()

    def test_key_combo(self, gui):
        system_tools.perform_action("key", key="ctrl+s")

        gui.hotkey.assert_called_once_with("ctrl", "s")

    def test_scroll_up_at_point(self, gui):
        system_tools.perform_action("scroll", x=5, y=6, direction="up", amount=2)

        gui.scroll.assert_called_once_with(2, x=5, y=6)

    def test_scroll_down_in_place(self, gui):
        system_tools.perform_action("scroll", amount=3)

        gui.scroll.assert_called_once_with(-3, x=None, y=None)


class TestNormalizeUrl:

    def test_adds_https(self):
        assert system_tools.normalize_url("example.com/page") == "https://example.com/page"

    def test_keeps_http(self):
        assert system_tools.normalize_url("http://localhost:8000") == "http://localhost:8000"

    @pytest.mark.parametrize("url", ["", "file:///etc/passwd", "ftp://example.com"])
    def test_rejects_other_schemes(self, url):
        with pytest.raises(ValueError):
            system_tools.normalize_url(url)


class TestScreenshot:

    def test_capture_grabs_all_monitors(self):
        with patch("apsara.system_tools.mss") as fake_mss:
            sct = fake_mss.mss.return_value.__enter__.return_value
            sct.monitors = [{"left": 0, "top": 0, "width": 3840, "height": 1080}, {"left": 0}]
            fake_mss.tools.to_png.return_value = b"PNGDATA"

            data = system_tools.capture_screen_png()

        assert data == b"PNGDATA"
        sct.grab.assert_called_once_with(sct.monitors[0])
        shot = sct.grab.return_value
        fake_mss.tools.to_png.assert_called_once_with(shot.rgb, shot.size)

    @pytest.mark.asyncio
    async def test_take_screenshot_encodes_image(self):
        with patch("apsara.system_tools.capture_screen_png", return_value=b"PNGDATA"):
            result = await system_tools.take_screenshot(platform="linux")

        assert result["success"] is True
        assert base64.b64decode(result["image"]) == b"PNGDATA"
        assert result["mimeType"] == "image/png"
        assert result["filename"].startswith("screenshot_")

    @pytest.mark.asyncio
    async def test_take_screenshot_without_data(self):
        with patch("apsara.system_tools.capture_screen_png", return_value=b""):
            result = await system_tools.take_screenshot(platform="linux")

        assert result["success"] is False

    @pytest.mark.asyncio
    async def test_take_screenshot_unsupported_platform(self):
        with patch("apsara.system_tools.capture_screen_png") as capture:
            result = await system_tools.take_screenshot(platform="sunos5")

        assert result == {"success": False, "error": "Unsupported platform"}
        capture.assert_not_called()

    @pytest.mark.asyncio
    async def test_take_screenshot_timeout(self):
        with patch("apsara.system_tools.capture_screen_png", side_effect=lambda: time.sleep(1)):
            with pytest.raises(ShellTimeoutError, match="screen capture timed out"):
                await system_tools.take_screenshot(timeout=0.1, platform="linux")

    @pytest.mark.asyncio
    async def test_capture_error_is_a_command_error(self):
        with patch("apsara.system_tools.capture_screen_png", side_effect=RuntimeError("XGetImage() failed")):
            with pytest.raises(ShellCommandError, match="XGetImage"):
                await system_tools.take_screenshot(platform="linux")


class TestClipboard:

    @pytest.mark.asyncio
    async def test_copy(self, clipboard):
        result = await system_tools.copy_to_clipboard("copy me", timeout=3, platform="linux")

        assert result["success"] is True
        clipboard.copy.assert_called_once_with("copy me")

    @pytest.mark.asyncio
    async def test_read_strips_whitespace(self, clipboard):
        clipboard.paste.return_value = "  some text\n"

        result = await system_tools.get_clipboard_text(platform="darwin")

        assert result == {"success": True, "text": "some text"}

    @pytest.mark.asyncio
    async def test_missing_clipboard_mechanism(self, clipboard):
        clipboard.paste.side_effect = RuntimeError("could not find a copy/paste mechanism")

        with pytest.raises(ShellCommandError, match="clipboard read failed"):
            await system_tools.get_clipboard_text(platform="linux")

    @pytest.mark.asyncio
    async def test_paste_uses_command_on_macos(self, gui):
        result = await system_tools.paste_from_clipboard(platform="darwin")

        assert result["success"] is True
        gui.hotkey.assert_called_once_with("command", "v")

    @pytest.mark.asyncio
    async def test_paste_uses_ctrl_elsewhere(self, gui):
        await system_tools.paste_from_clipboard(platform="win32")

        gui.hotkey.assert_called_once_with("ctrl", "v")


class TestOpenUrl:

    @pytest.mark.asyncio
    async def test_normalizes_and_opens(self):
        with patch("apsara.system_tools.webbrowser.open", return_value=True) as browser:
            result = await system_tools.open_url("example.com", platform="linux")

        assert result == {"success": True, "message": "Opened https://example.com", "url": "https://example.com"}
        browser.assert_called_once_with("https://example.com")

    @pytest.mark.asyncio
    async def test_rejects_file_scheme(self):
        with patch("apsara.system_tools.webbrowser.open") as browser:
            result = await system_tools.open_url("file:///etc/passwd", platform="linux")

        assert result["success"] is False
        browser.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_browser(self):
        with patch("apsara.system_tools.webbrowser.open", return_value=False):
            result = await system_tools.open_url("example.com", platform="linux")

        assert result == {"success": False, "error": "No web browser available"}


class TestComputerUse:

    @pytest.mark.asyncio
    async def test_reports_coordinates(self, gui):
        result = await system_tools.computer_use("click", x=5, y=6, platform="linux")

        assert result == {"success": True, "action": "click", "x": 5, "y": 6}
        gui.click.assert_called_once_with(5, 6)

    @pytest.mark.asyncio
    async def test_invalid_arguments_never_touch_the_desktop(self, gui):
        result = await system_tools.computer_use("click", platform="linux")

        assert result["success"] is False
        gui.click.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_key_is_a_command_error(self, gui):
        with pytest.raises(ShellCommandError, match="Unknown key"):
            await system_tools.computer_use("key", key="hyper", platform="linux")
