from common.config.config_manager import ConfigManager


class TimeoutManager:
    run_completion_timeout: int = (
        int(timeout) if (timeout := ConfigManager.get_config()["timeouts"].get("run_completion_timeout")) else 0
    )
    run_state_poll_interval: float = (
        float(interval)
        if (interval := ConfigManager.get_config()["timeouts"].get("run_state_poll_interval"))
        else 5
    )
    run_state_max_poll_interval: float = (
        float(interval)
        if (interval := ConfigManager.get_config()["timeouts"].get("run_state_max_poll_interval"))
        else 30
    )
    run_stall_timeout: float = (
        float(timeout) if (timeout := ConfigManager.get_config()["timeouts"].get("run_stall_timeout")) else 60
    )
    run_state_fetch_retry_wait: float = (
        float(wait) if (wait := ConfigManager.get_config()["timeouts"].get("run_state_fetch_retry_wait")) else 0
    )
    run_state_fetch_attempts: int = (
        int(attempts)
        if (attempts := ConfigManager.get_config().get("retries", {}).get("run_state_fetch_attempts"))
        else 1
    )
