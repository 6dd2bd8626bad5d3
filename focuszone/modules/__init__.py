"""Recognition, control, intelligence, capture and utility modules."""
