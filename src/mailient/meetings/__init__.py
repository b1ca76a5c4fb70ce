"""Meeting scheduling: provider orchestration and AI scheduling assistance."""
