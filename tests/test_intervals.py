"""Tests for round-number interval milestones."""

from app.milestones.intervals import MilestoneInterval, generate_milestones, milestone_progress
from app.milestones.units import WeightUnit

LB = WeightUnit.lb


class TestMilestoneInterval:
    def test_pound_values(self):
        assert [i.pounds for i in MilestoneInterval] == [5.0, 10.0, 15.0]

    def test_kilogram_values_are_rounded(self):
        assert [i.kilograms for i in MilestoneInterval] == [2.0, 5.0, 7.0]

    def test_display_label(self):
        assert MilestoneInterval.ten.display_label(WeightUnit.kg) == "5 kg"
        assert MilestoneInterval.ten.display_label(LB) == "10 lb"


class TestGenerateMilestones:
    def test_weight_loss(self):
        assert generate_milestones(200, 160, LB) == [195, 190, 185, 180, 175, 170, 165, 160]

    def test_weight_gain(self):
        assert generate_milestones(120, 150, LB) == [125, 130, 135, 140, 145, 150]

    def test_goal_is_last_even_off_grid(self):
        result = generate_milestones(200, 162, LB)
        assert result[-1] == 162
        assert result[-2] == 165

    def test_ten_pound_interval(self):
        result = generate_milestones(200, 160, LB, MilestoneInterval.ten)
        assert result == [190, 180, 170, 160]
        assert 195 not in result

    def test_kilograms(self):
        result = generate_milestones(90, 70, WeightUnit.kg)
        assert result[:2] == [88, 86]
        assert result[-2:] == [72, 70]

    def test_off_grid_start(self):
        assert generate_milestones(198, 185, LB) == [195, 190, 185]

    def test_nothing_between(self):
        assert generate_milestones(165, 160, LB) == [160]


class TestMilestoneProgress:
    def test_at_start(self):
        p = milestone_progress(200, 200, 160, LB)
        assert p.next_milestone == 195
        assert p.previous_milestone == 200
        assert p.progress_to_next == 0.0

    def test_halfway_segment(self):
        assert milestone_progress(197.5, 200, 160, LB).progress_to_next == 0.5

    def test_at_milestone(self):
        assert milestone_progress(195, 200, 160, LB).progress_to_next == 1.0

    def test_next_segment(self):
        p = milestone_progress(192, 200, 160, LB)
        assert p.next_milestone == 190
        assert p.previous_milestone == 195
        assert p.progress_to_next > 0.5

    def test_intermediate_not_goal(self):
        p = milestone_progress(178.6, 200, 160, LB)
        assert p.next_milestone == 175
        assert abs(p.weight_to_next - 3.6) < 0.01

    def test_current_above_start_uses_effective_start(self):
        p = milestone_progress(178.6, 165, 160, LB)
        assert p.next_milestone == 175
        assert abs(p.weight_to_next - 3.6) < 0.01

    def test_wrong_direction_on_loss_goal(self):
        assert milestone_progress(190, 185, 160, LB).progress_to_next == 0.0

    def test_wrong_direction_on_gain_goal(self):
        assert milestone_progress(125, 130, 150, LB).progress_to_next == 0.0

    def test_partial_when_far_from_goal(self):
        p = milestone_progress(179, 200, 160, LB)
        assert 0.0 < p.progress_to_next < 1.0

    def test_reached_goal(self):
        assert milestone_progress(159, 200, 160, LB).has_reached_goal is True
        assert milestone_progress(151, 130, 150, LB).has_reached_goal is True
        assert milestone_progress(170, 200, 160, LB).has_reached_goal is False

    def test_completed_deduplicated(self):
        p = milestone_progress(180, 200, 160, LB, completed=[195, 190, 195])
        assert p.completed_milestones == [190, 195]
