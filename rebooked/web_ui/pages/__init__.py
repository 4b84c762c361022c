"""Web UI ページモジュール。"""
from rebooked.web_ui.pages.admin import render_admin
from rebooked.web_ui.pages.banking import render_banking
from rebooked.web_ui.pages.commits import render_commits
from rebooked.web_ui.pages.dashboard import render_dashboard
from rebooked.web_ui.pages.settings import render_env_tab, render_settings
from rebooked.web_ui.pages.tools import render_tools

__all__ = [
    "render_admin",
    "render_banking",
    "render_commits",
    "render_dashboard",
    "render_env_tab",
    "render_settings",
    "render_tools",
]
