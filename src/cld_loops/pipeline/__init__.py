"""Loop analysis pipeline: scoring, factor classification and exports."""
