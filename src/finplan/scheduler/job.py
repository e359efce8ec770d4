import atexit
from apscheduler.schedulers.background import BackgroundScheduler
from finplan.config import config
from finplan.utils.logger import logger
from finplan.services import build_services

scheduler = BackgroundScheduler(timezone=config["settings"]["timezone"])
refresh_minutes = config["scheduler"].get("refresh_minutes", 5)
scheduler_id = config["scheduler"].get("id")
scheduler_name = config["scheduler"].get("name")


def warm_dropdown_cache_job() -> bool:
    """Rebuild the dropdown indices into the shared cache before they expire"""
    try:
        services = build_services()
        index = services.mapping.refresh()
        if index.is_empty():
            logger.warning("Dropdown cache warmed with an empty mapping")
            return False
        logger.info(
            f"Dropdown cache warmed: {len(index.type_to_categories)} types, "
            f"{len(index.type_category_to_subcategories)} category pairs"
        )
        return True
    except Exception as e:
        logger.error(f"Error in warm_dropdown_cache_job: {e}", exc_info=True)
        return False


def start_scheduler() -> None:
    """Initialize and start the background scheduler"""
    if not config["scheduler"].get("enabled", True):
        logger.info("Scheduler disabled in config")
        return
    if scheduler.running:
        return
    try:
        scheduler.add_job(
            func=warm_dropdown_cache_job,
            trigger="interval",
            minutes=refresh_minutes,
            id=scheduler_id,
            name=scheduler_name,
            replace_existing=True,
        )
        scheduler.start()
        logger.info(
            f"🚀 Background scheduler started, warming dropdown cache every {refresh_minutes} min"
        )
        atexit.register(stop_scheduler)
    except Exception as e:
        logger.error(f"Failed to start scheduler: {e}", exc_info=True)


def stop_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")
