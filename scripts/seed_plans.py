"""
Seed script to populate exams and plans.
Run: python scripts/seed_plans.py
"""

import asyncio
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select
from app.database import async_session_maker
from app.models.catalog import Exam
from app.models.plan import Plan


EXAMS_DATA = [
    {"slug": "neet", "name": "NEET", "description": "National Eligibility cum Entrance Test (UG)"},
    {"slug": "aiims", "name": "AIIMS", "description": "AIIMS MBBS entrance (archived papers)"},
]

# Prices in paise
PLANS_DATA = [
    {
        "slug": "neet-monthly",
        "name": "NEET Monthly",
        "price_in_paise": 49900,
        "billing_interval": "monthly",
        "exam_slug": "neet",
        "features": {"items": ["All NEET PYQs", "Chapter-wise practice", "Bookmarks"]},
    },
    {
        "slug": "neet-yearly",
        "name": "NEET Yearly",
        "price_in_paise": 399900,
        "billing_interval": "yearly",
        "exam_slug": "neet",
        "features": {"items": ["All NEET PYQs", "Chapter-wise practice", "Bookmarks", "Streak insights"]},
    },
    {
        "slug": "aiims-crash-course",
        "name": "AIIMS Crash Course",
        "price_in_paise": 149900,
        "billing_interval": "once",
        "duration_days": 90,
        "exam_slug": "aiims",
        "features": {"items": ["AIIMS archive", "90 days access"]},
    },
]


async def seed_plans():
    """Seed exams and plans into database."""
    if not async_session_maker:
        print("❌ DATABASE_URL not configured.")
        return

    async with async_session_maker() as db:
        result = await db.execute(select(Plan).limit(1))
        if result.scalar_one_or_none():
            print("⚠️ Plans already seeded. Skipping.")
            return

        exams = {}
        for exam_data in EXAMS_DATA:
            result = await db.execute(select(Exam).where(Exam.slug == exam_data["slug"]))
            exam = result.scalar_one_or_none()
            if not exam:
                exam = Exam(**exam_data)
                db.add(exam)
                print(f"  ✅ Added exam: {exam_data['name']}")
            exams[exam_data["slug"]] = exam
        await db.flush()

        for plan_data in PLANS_DATA:
            data = dict(plan_data)
            exam = exams[data.pop("exam_slug")]
            db.add(Plan(exam_id=exam.id, active=True, **data))
            print(f"  ✅ Added plan: {plan_data['name']} (₹{plan_data['price_in_paise'] // 100})")

        await db.commit()
        print(f"\n🎉 Successfully seeded {len(PLANS_DATA)} plans!")


if __name__ == "__main__":
    print("📚 Seeding exams and plans...\n")
    asyncio.run(seed_plans())
