"""Seed script: one job with a hand-written profile, three pasted resumes linked to it.

No LLM calls are made; parse the resumes afterwards through the API.
Run via: python scripts/seed_data.py
"""

import asyncio
import uuid

from jose import jwt
from sqlalchemy import select

from scout.core.config import settings
from scout.core.database import engine, open_session
from scout.models.orm import Job, JobApplication, Resume
from scout.models.parsing import JobProfile
from scout.services.text_extraction_service import sha256_hex

JOB_ID = uuid.UUID("5c0a7e00-0000-4000-8000-000000000001")
RESUME_IDS = [
    uuid.UUID("5c0a7e00-0000-4000-8000-000000000101"),
    uuid.UUID("5c0a7e00-0000-4000-8000-000000000102"),
    uuid.UUID("5c0a7e00-0000-4000-8000-000000000103"),
]

JOB_TITLE = "Data Platform Engineer"

JOB_DESCRIPTION = """Data Platform Engineer

Our analytics group needs an engineer to run the ingestion platform that feeds
every dashboard in the company. You will design batch and streaming pipelines,
keep the warehouse healthy and help product teams publish clean datasets."""

JOB_REQUIREMENTS = """- 4+ years building data pipelines in production
- Python and SQL every day
- Airflow or a similar orchestrator
- Kafka or another streaming platform
- Terraform and AWS are a plus"""

JOB_PROFILE = JobProfile(
    summary="Data engineer running Python and SQL pipelines with Airflow and Kafka on AWS.",
    must_have_skills=["Python", "SQL", "Airflow"],
    nice_to_have_skills=["dbt", "Spark"],
    soft_skills=["Stakeholder communication"],
    target_titles=["Data Engineer", "Analytics Engineer"],
    responsibilities=["Design streaming pipelines", "Maintain the data warehouse"],
    required_experience_years=4,
    preferred_experience_years=6,
    domain_keywords=["Analytics"],
    tools_and_tech=["Kafka", "Terraform", "AWS"],
)

CANDIDATES = [
    {
        "id": RESUME_IDS[0],
        "name": "Priya Raman",
        "email": "priya.raman@example.org",
        "text": """Priya Raman
Data Engineer | priya.raman@example.org

WORK HISTORY
Data Engineer, Northwind Logistics (2019-2024)
- Moved nightly SQL jobs into Airflow DAGs written in Python
- Ran a Kafka cluster for shipment events and streamed them into Redshift on AWS
Analytics Engineer, Fabrikam Retail (2017-2019)
- Modelled the sales warehouse with dbt, provisioned infrastructure with Terraform

TOOLS
Python, SQL, Airflow, Kafka, dbt, Terraform, AWS, Redshift""",
    },
    {
        "id": RESUME_IDS[1],
        "name": "Tomasz Nowak",
        "email": "t.nowak@example.org",
        "text": """Tomasz Nowak
Business Intelligence Analyst | t.nowak@example.org

WORK HISTORY
BI Analyst, Contoso Insurance (2021-2024)
- Built Power BI reports on top of SQL Server views
- Automated Excel exports with small Python scripts

TOOLS
SQL, Power BI, Excel, basic Python""",
    },
    {
        "id": RESUME_IDS[2],
        "name": "Amara Okafor",
        "email": "amara.okafor@example.org",
        "text": """Amara Okafor
Senior Software Engineer | amara.okafor@example.org

WORK HISTORY
Senior Software Engineer, Tailspin Media (2018-2024)
- Wrote Spark jobs in Python for clickstream aggregation on AWS EMR
- Published Kafka topics consumed by the recommendations team
Software Engineer, Wide World Importers (2015-2018)
- Maintained PostgreSQL reporting schemas and SQL stored procedures

TOOLS
Python, Spark, Kafka, SQL, PostgreSQL, AWS, Docker""",
    },
]


async def seed() -> None:
    async with open_session() as session:
        found = await session.execute(select(Job.id).where(Job.id == JOB_ID))
        if found.scalar_one_or_none():
            print(f"Job {JOB_ID} is already seeded, nothing to do.")
            await engine.dispose()
            return

        session.add(Job(
            id=JOB_ID,
            title=JOB_TITLE,
            description=JOB_DESCRIPTION,
            requirements=JOB_REQUIREMENTS,
            company_name="Demo Analytics",
            location="Remote (EU)",
            is_remote=True,
            required_experience_years=4,
            preferred_experience_min_years=6,
            preferred_experience_max_years=8,
            mandatory_skill_requirements=[{"skill": "Python"}, {"skill": "SQL"}, {"skill": "Airflow"}],
            ai_job_profile=JOB_PROFILE.model_dump(),
            ai_job_profile_version=JOB_PROFILE.version,
            ai_summary=JOB_PROFILE.summary,
        ))
        await session.flush()

        for candidate in CANDIDATES:
            body = candidate["text"].encode("utf-8")
            slug = candidate["name"].lower().replace(" ", "-")
            session.add(Resume(
                id=candidate["id"],
                original_name=f"{slug}.txt",
                file_name=f"{candidate['id'].hex}.txt",
                mime_type="text/plain",
                file_size=len(body),
                file_hash=sha256_hex(body),
                source_type="text",
                candidate_name=candidate["name"],
                email=candidate["email"],
                raw_text=candidate["text"],
            ))
        await session.flush()

        session.add_all(JobApplication(job_id=JOB_ID, resume_id=resume_id) for resume_id in RESUME_IDS)
        await session.commit()

    await engine.dispose()

    token = jwt.encode(
        {"sub": "seed-admin", "role": "admin", "tables": ["*"]},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    api = "http://localhost:8000/api/v1"

    print(f"Seeded job {JOB_ID} ({JOB_TITLE}) with {len(CANDIDATES)} applications.")
    for candidate in CANDIDATES:
        print(f"  resume {candidate['id']}  {candidate['name']}")
    print(f"\nexport TOKEN=\"{token}\"\n")
    print("Parse every unparsed resume:")
    print(f'  curl -s -X POST -H "Authorization: Bearer $TOKEN" "{api}/resumes/parse-missing?limit=10"')
    print("Ranked applications for the job:")
    print(f'  curl -s -H "Authorization: Bearer $TOKEN" "{api}/jobs/{JOB_ID}/applications?sort_field=match_score"')


if __name__ == "__main__":
    asyncio.run(seed())
