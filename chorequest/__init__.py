"""ChoreQuest: chores, quests and rewards paid for with points."""
