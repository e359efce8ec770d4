# WSGI entry point, e.g. for PythonAnywhere:
# point the web app's WSGI configuration file at this module.
import sys

# Add the project's src directory to the Python path
project_home = "/home/finplan/finplan/src"
if project_home not in sys.path:
    sys.path = [project_home] + sys.path

from finplan.webhook.webhook import app
from finplan.scheduler.job import start_scheduler

start_scheduler()

# The WSGI application should be called 'application'
application = app

if __name__ == "__main__":
    application.run()
