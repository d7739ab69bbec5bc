from docreview.gateway.client_base import BaseGenerationClient
from docreview.gateway.factory import GatewayFactory
from docreview.gateway.gateway import AIGateway

__all__ = ["AIGateway", "BaseGenerationClient", "GatewayFactory"]
