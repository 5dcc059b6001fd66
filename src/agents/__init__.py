from src.agents.pharmacy_agent import PharmacyAgent

__all__ = ["PharmacyAgent"]
