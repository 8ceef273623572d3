# Starter catalog written into a family the first time it is opened.
from ..models.task import TaskCategory
from ..models.reward import RewardType

AVATAR_PALETTE = [
    "bg-blue-600",
    "bg-pink-500",
    "bg-purple-500",
    "bg-amber-500",
    "bg-emerald-500",
    "bg-indigo-500",
]

DEFAULT_TASKS = [
    # 学习好习惯
    {"category": TaskCategory.LEARNING, "title": "完成作业", "description": "每天9点前完成作业", "points": 1, "frequency": "每日"},
    {"category": TaskCategory.LEARNING, "title": "完成课外练习", "description": "主动完成课外练习", "points": 1, "frequency": "每日"},
    {"category": TaskCategory.LEARNING, "title": "每日口算", "description": "每日口算（>5题）", "points": 1, "frequency": "每日"},
    {"category": TaskCategory.LEARNING, "title": "课外阅读", "description": "阅读课外书≥15分钟", "points": 1, "frequency": "每日"},
    {"category": TaskCategory.LEARNING, "title": "作业整洁", "description": "作业整洁获“优”表扬", "points": 2, "frequency": "每次"},
    {"category": TaskCategory.LEARNING, "title": "晨读", "description": "英文、语文晨读", "points": 2, "frequency": "每日"},
    {"category": TaskCategory.LEARNING, "title": "默写全对", "description": "课堂默写/听写全对", "points": 2, "frequency": "每次"},
    {"category": TaskCategory.LEARNING, "title": "自主默写", "description": "自主默写语/英词汇", "points": 2, "frequency": "每次"},
    {"category": TaskCategory.LEARNING, "title": "主动预习", "description": "主动预习次日课程", "points": 2, "frequency": "每日"},
    {"category": TaskCategory.LEARNING, "title": "主动复习", "description": "主动复习当天课程", "points": 2, "frequency": "每日"},
    {"category": TaskCategory.LEARNING, "title": "小作文/日记", "description": "完成小作文/日记100字+", "points": 3, "frequency": "每周"},
    {"category": TaskCategory.LEARNING, "title": "认真参加兴趣班", "description": "认真参加各类兴趣课程", "points": 3, "frequency": "每次"},
    {"category": TaskCategory.LEARNING, "title": "完成大作文", "description": "完成大作文300字+", "points": 5, "frequency": "每周"},
    {"category": TaskCategory.LEARNING, "title": "周计划", "description": "制定并完成周计划", "points": 5, "frequency": "每周"},
    {"category": TaskCategory.LEARNING, "title": "掌握错题", "description": "主动默写错题并掌握", "points": 5, "frequency": "每次"},
    {"category": TaskCategory.LEARNING, "title": "考试优异", "description": "单科考试成绩达到95分以上", "points": 20, "frequency": "每次"},
    {"category": TaskCategory.LEARNING, "title": "长期计划", "description": "制定实施长期学习计划", "points": 20, "frequency": "每次"},
    # 家务小能手
    {"category": TaskCategory.CHORES, "title": "扫地", "description": "扫地或擦桌子", "points": 1, "frequency": "每日"},
    {"category": TaskCategory.CHORES, "title": "收拾书桌", "description": "收拾书桌保持整洁", "points": 1, "frequency": "每日"},
    {"category": TaskCategory.CHORES, "title": "摆收碗筷", "description": "饭前摆/饭后收碗筷", "points": 1, "frequency": "每日"},
    {"category": TaskCategory.CHORES, "title": "洗碗", "description": "洗碗（自己或协助）", "points": 1, "frequency": "每日"},
    {"category": TaskCategory.CHORES, "title": "清洗食材", "description": "清洗水果/简单食材", "points": 1, "frequency": "每日"},
    {"category": TaskCategory.CHORES, "title": "扔垃圾", "description": "扔垃圾", "points": 1, "frequency": "每日"},
    {"category": TaskCategory.CHORES, "title": "整理公共区", "description": "主动整理公共区域玩具书籍", "points": 2, "frequency": "每日"},
    {"category": TaskCategory.CHORES, "title": "拖地", "description": "拖地", "points": 2, "frequency": "每日"},
    {"category": TaskCategory.CHORES, "title": "叠衣服", "description": "叠放全家衣物并分类", "points": 2, "frequency": "每日"},
    {"category": TaskCategory.CHORES, "title": "整理冰箱", "description": "整理冰箱清理过期食品", "points": 2, "frequency": "每周"},
    # 违规处罚
    {"category": TaskCategory.PENALTY, "title": "发脾气", "description": "顶嘴、不礼貌、情绪化", "points": -3, "frequency": "每次"},
    {"category": TaskCategory.PENALTY, "title": "超时使用电子产品", "description": "未经允许或超时使用", "points": -5, "frequency": "每次"},
]

DEFAULT_REWARDS = [
    {"title": "泡泡糖/橡皮/铅笔", "points": 5, "type": RewardType.PHYSICAL},
    {"title": "免家务券", "points": 10, "type": RewardType.PRIVILEGE},
    {"title": "电视/平板 20分钟", "points": 20, "type": RewardType.PRIVILEGE},
    {"title": "周末游乐园", "points": 100, "type": RewardType.PRIVILEGE},
]
