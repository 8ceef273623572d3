"""
Printable family handbook: the task rules, the reward shop and everyone's
balance, as one self-contained HTML page. Pure function of the snapshot.
"""
from datetime import date
from html import escape

from ..models.task import TaskCategory
from ..schemas.family import FamilySnapshot
from ..schemas.task import TaskOut

SECTION_TITLES = {
    TaskCategory.LEARNING: "学习好习惯",
    TaskCategory.CHORES: "家务小能手",
    TaskCategory.DISCIPLINE: "自律好品格",
    TaskCategory.PENALTY: "违规处罚",
    TaskCategory.REWARD: "额外奖励",
}

REWARD_TYPE_LABELS = {"physical": "实物奖品", "privilege": "特权奖励"}

STYLE = """
body { font-family: sans-serif; margin: 24px; color: #222; }
h1 { font-size: 22px; margin-bottom: 4px; }
.category-title { font-weight: bold; margin: 18px 0 6px; }
table { width: 100%; border-collapse: collapse; font-size: 13px; }
th, td { border: 1px solid #999; padding: 4px 6px; text-align: left; }
.col-pts { width: 60px; text-align: center; }
@media print { body { margin: 0; } }
"""


def _signed(points: int) -> str:
    return f"+{points}" if points > 0 else str(points)


def _task_table(title: str, tasks: list[TaskOut]) -> str:
    if not tasks:
        return ""
    rows = "".join(
        f"<tr><td class=\"col-pts\">{_signed(t.points)}</td>"
        f"<td><b>{escape(t.title)}</b><br><small>{escape(t.description or '')}</small></td>"
        f"<td>{escape(t.frequency or '')}</td></tr>"
        for t in tasks
    )
    return (
        f"<div class=\"category-title\">{escape(title)}</div>"
        "<table><thead><tr><th class=\"col-pts\">元气值</th><th>事项说明</th><th>周期</th></tr></thead>"
        f"<tbody>{rows}</tbody></table>"
    )


def render_family_report(snapshot: FamilySnapshot, *, on: date | None = None) -> str:
    on = on or date.today()
    sections = []
    for category, label in SECTION_TITLES.items():
        tasks = sorted((t for t in snapshot.tasks if t.category == category), key=lambda t: t.points)
        sections.append(_task_table(label, tasks))

    active_rewards = sorted((r for r in snapshot.rewards if r.status == "active"), key=lambda r: r.points)
    reward_rows = "".join(
        f"<tr><td class=\"col-pts\">{r.points}</td><td>{escape(r.title)}</td>"
        f"<td>{escape(REWARD_TYPE_LABELS.get(r.type, r.type))}</td></tr>"
        for r in active_rewards
    )
    member_rows = "".join(
        f"<tr><td>{escape(m.name)}</td><td>{'管理员' if m.role == 'admin' else '成员'}</td>"
        f"<td class=\"col-pts\">{m.balance}</td></tr>"
        for m in snapshot.members
    )
    return f"""<!DOCTYPE html>
<html lang="zh-CN">
<head><meta charset="utf-8"><title>{escape(snapshot.name)} 元气手册</title><style>{STYLE}</style></head>
<body>
<h1>{escape(snapshot.name)} 元气手册</h1>
<div>{on.isoformat()}</div>
{''.join(sections)}
<div class="category-title">元气商店</div>
<table><thead><tr><th class="col-pts">元气值</th><th>奖品</th><th>类型</th></tr></thead><tbody>{reward_rows}</tbody></table>
<div class="category-title">成员余额</div>
<table><thead><tr><th>成员</th><th>身份</th><th class="col-pts">元气值</th></tr></thead><tbody>{member_rows}</tbody></table>
</body>
</html>"""
