from app.points.calculator import PointsCalculation, RoundingMode, calculate_points

__all__ = ["PointsCalculation", "RoundingMode", "calculate_points"]
