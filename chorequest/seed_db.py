"""
Sample data for a ChoreQuest database.

Creates two children, a handful of chores, a quest and some rewards.
Running it again skips anything that already exists.
"""

import logging

from chorequest.models import Child, Task, Quest, Reward
from chorequest.services.chore_service import ChoreService
from chorequest.services.child_service import ChildService
from chorequest.services.quest_service import QuestService
from chorequest.services.redemption_service import RedemptionService

logger = logging.getLogger(__name__)

CHILDREN = ['Alice', 'Bob']

TASKS = [
    {'title': 'Make bed', 'recurrence': 'daily', 'default_points': 5, 'requires_approval': False},
    {'title': 'Feed the cat', 'recurrence': 'daily', 'default_points': 10, 'requires_approval': True},
    {'title': 'Take out trash', 'recurrence': 'weekly', 'default_points': 15, 'requires_approval': True},
    {'title': 'Clean room', 'recurrence': 'weekly', 'default_points': 20, 'requires_approval': True},
    {'title': 'Sort old toys for donation', 'recurrence': 'once', 'default_points': 25, 'requires_approval': True},
]

QUESTS = [
    {
        'title': 'Garden helper',
        'description': 'Get the garden ready for spring',
        'target_reward': 'Trip to the garden centre',
        'tasks': [
            {'title': 'Rake the leaves', 'points': 10, 'order_index': 1},
            {'title': 'Plant the seeds', 'points': 20, 'order_index': 2},
            {'title': 'Water for a week', 'points': 15, 'order_index': 3},
        ]
    }
]

REWARDS = [
    {'title': '30 minutes screen time', 'cost_points': 20},
    {'title': 'Stay up 30 min late', 'cost_points': 30},
    {'title': 'Choose movie night film', 'cost_points': 40},
    {'title': 'Pick dinner menu', 'cost_points': 50},
]


def seed_children() -> list:
    children = []
    for name in CHILDREN:
        child = Child.query.filter_by(name=name).first()
        if child:
            logger.info(f"Child already exists: {name}")
        else:
            child = ChildService.create_child(name)
        children.append(child)
    return children


def seed_tasks(children: list) -> list:
    """Create sample chores and assign each to every child."""
    tasks = []
    for task_data in TASKS:
        task = Task.query.filter_by(title=task_data['title']).first()
        if task:
            logger.info(f"Chore already exists: {task_data['title']}")
        else:
            task = ChoreService.create_task(**task_data)

        if task.is_active:
            for child in children:
                ChoreService.assign_task(task.id, child.id)
        tasks.append(task)
    return tasks


def seed_quests() -> list:
    quests = []
    for quest_data in QUESTS:
        quest = Quest.query.filter_by(title=quest_data['title']).first()
        if quest:
            logger.info(f"Quest already exists: {quest_data['title']}")
            quests.append(quest)
            continue

        quest = QuestService.create_quest(
            quest_data['title'],
            description=quest_data['description'],
            target_reward=quest_data['target_reward']
        )
        for task_data in quest_data['tasks']:
            QuestService.create_quest_task(quest.id, **task_data)
        quests.append(quest)
    return quests


def seed_rewards() -> list:
    rewards = []
    for reward_data in REWARDS:
        reward = Reward.query.filter_by(title=reward_data['title']).first()
        if reward:
            logger.info(f"Reward already exists: {reward_data['title']}")
        else:
            reward = RedemptionService.create_reward(**reward_data)
        rewards.append(reward)
    return rewards


def seed_sample_data() -> dict:
    """
    Seed the database. Must run inside an application context.

    Returns:
        dict of entity name to number of entities present after seeding
    """
    children = seed_children()
    tasks = seed_tasks(children)
    quests = seed_quests()
    rewards = seed_rewards()

    logger.info("Seeding complete")
    return {
        'children': len(children),
        'chores': len(tasks),
        'quests': len(quests),
        'rewards': len(rewards)
    }
