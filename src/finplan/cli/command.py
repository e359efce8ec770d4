from finplan.services import Services
from finplan.report.monthly import format_summary
from ..cli import helper


def handle_command(services: Services, cmd: str) -> str:
    """Run one shell command and return its text response"""
    cmd = cmd.strip()
    if not cmd:
        return ""

    base_command = cmd.split()[0].lower()
    if base_command not in command_map:
        return f"Unknown command: {cmd}"

    response = helper.call_command(command_map[base_command], services, cmd)
    notifications = helper.format_notifications(services.notifier.drain())
    return f"{response}\n{notifications}".strip() if notifications else response


def refresh(services: Services) -> str:
    index = services.mapping.refresh()
    if index.is_empty():
        return "Dropdown cache refresh produced no mappings."
    return (
        f"Dropdown cache refreshed: {len(index.type_to_categories)} types, "
        f"{len(index.type_category_to_subcategories)} category pairs."
    )


def mapping(services: Services) -> str:
    index = services.mapping.get_index()
    if index.is_empty():
        return "No dropdown mappings found."
    lines = []
    for type_name, categories in index.type_to_categories.items():
        lines.append(f"{type_name}:")
        for category in categories:
            subs = index.subcategories_for(type_name, category)
            suffix = f" ({', '.join(subs)})" if subs else ""
            lines.append(f"  • {category}{suffix}")
    return "\n".join(lines)


def prefs(services: Services) -> str:
    preferences = services.preferences.get_all_preferences()
    if not preferences:
        return "No preferences stored."
    return "\n".join(f"{key} = {value!r}" for key, value in preferences.items())


def toggle_sub(services: Services) -> str:
    enabled = services.preferences.toggle_show_sub_categories()
    return f"Sub-categories {'enabled' if enabled else 'disabled'} in Overview sheet"


def reset_prefs(services: Services) -> str:
    services.preferences.reset_all_preferences()
    return "Preferences reset."


def clear_cache(services: Services) -> str:
    services.cache.invalidate_all()
    return "Cache cleared."


def report(services: Services, cmd: str = "") -> str:
    offset = helper.get_offset_from_command(cmd)
    summary = services.monthly_report.generate(offset)
    if summary is None:
        return "Failed to generate monthly spending report."
    return format_summary(summary)


def overview(services: Services) -> str:
    combinations = services.overview.get()
    if not combinations:
        return "No categories found."
    return "\n".join(" / ".join(part for part in combo if part) for combo in combinations)


command_map = {
    "refresh": refresh,
    "mapping": mapping,
    "prefs": prefs,
    "toggle_sub": toggle_sub,
    "reset_prefs": reset_prefs,
    "clear_cache": clear_cache,
    "report": report,
    "overview": overview,
}
