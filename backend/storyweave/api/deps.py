from fastapi import Request

from storyweave.bootstrap import Services


def get_services(request: Request) -> Services:
    """Services built in the application lifespan"""
    return request.app.state.services
