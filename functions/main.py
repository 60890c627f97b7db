"""
Serverless entry point: adapts the ASGI app to API Gateway / Lambda events.
"""

from mangum import Mangum

from ankor_api.app import app

handler = Mangum(app, lifespan="off")
