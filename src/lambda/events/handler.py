"""
BNDY Events Lambda Handler
Placeholder until gig and event routes exist: every request gets a 501.
"""

from common.config import Settings, load_settings
from common.response import error
from common.router import lambda_entry


def make_handler(settings: Settings):
    def route(request):
        return error("Events Lambda not yet implemented", 501, path=request.path)

    return lambda_entry("events", settings, route)


handler = make_handler(load_settings())
