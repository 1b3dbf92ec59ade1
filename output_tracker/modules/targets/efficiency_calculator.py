from typing import Optional


class EfficiencyCalculator:
    """
    Labor efficiency of a workcenter over a period.

    Efficiency = (SMV × Output × 100) / (Team Members × Work Minutes)
    """

    @staticmethod
    def efficiency(
        output_qty: Optional[float],
        smv: Optional[float],
        team_member_count: Optional[int],
        work_minutes: Optional[float],
    ) -> float:
        """
        Efficiency percentage, unrounded.

        Examples:
            >>> EfficiencyCalculator.efficiency(100, 1.0, 5, 60)
            33.333333333333336
            >>> EfficiencyCalculator.efficiency(100, 1.0, 0, 60)
            0.0

        Returns:
            float: 0.0 when headcount or minutes are not positive, or when
            output or SMV is missing. Never raises.
        """
        if not output_qty or not smv:
            return 0.0
        if not team_member_count or team_member_count <= 0:
            return 0.0
        if not work_minutes or work_minutes <= 0:
            return 0.0

        return (smv * output_qty * 100) / (team_member_count * work_minutes)
