import inspect


# Pass only as many leading arguments as the command accepts
def call_command(func, *args) -> str:
    return func(*args[: count_parameters(func)])


def count_parameters(func: callable) -> int:
    sig = inspect.signature(func)
    return len(sig.parameters)


# Extract offset from command string
def get_offset_from_command(command: str) -> int:
    parts = command.split()
    offset = 0
    if len(parts) > 1:
        try:
            offset = int(parts[1])
        except ValueError:
            print("Invalid offset value. Using default offset 0.")
    return offset


def format_notifications(notifications: list[dict]) -> str:
    return "\n".join(f"[{n['title']}] {n['message']}" for n in notifications)
