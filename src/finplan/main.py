import os
from finplan.utils.logger import logger
from finplan.webhook.webhook import app
from finplan.scheduler.job import start_scheduler, stop_scheduler


def main():
    """Run the webhook server with the cache-warming scheduler"""
    try:
        start_scheduler()

        logger.info("finplan started successfully with webhook support!")
        print("🚀 finplan is running with webhooks...")
        print("💬 Listening for edit events on /edit")

        # Add global error handler for the Flask app
        @app.errorhandler(Exception)
        def handle_exception(e):
            logger.error(f"Unhandled exception in Flask app: {e}", exc_info=True)
            return "Internal server error", 500

        app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)), debug=False)

    except KeyboardInterrupt:
        logger.info("Stopped by user")
        print("\n👋 Stopped by user")
    except Exception as e:
        logger.error(f"Error starting server: {e}", exc_info=True)
        print(f"❌ Failed to start server: {e}")
    finally:
        stop_scheduler()


if __name__ == "__main__":
    main()
