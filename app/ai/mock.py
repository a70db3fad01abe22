"""Fallback tier used when no AI provider can serve a request.

Output shape is fixed; values are random. Callers must only rely on field
presence, ranges and counts.
"""
from __future__ import annotations

import random
from datetime import date, timedelta

from app.schemas.ai import AnalysisResult, JobMatch

MOCK_MATCH_COUNT = 5
MOCK_RECOMMENDATION_LIMIT = 5

BASE_RECOMMENDATIONS = (
    "Use more industry-specific keywords to improve ATS compatibility",
    "Quantify your achievements with specific metrics and results",
    "Ensure your resume has a clean, consistent formatting structure",
    "Tailor your skills section to match the job requirements more closely",
    "Include a concise professional summary at the top of your resume",
)
JOB_DESCRIPTION_RECOMMENDATIONS = (
    "Align your work experience more closely with the job requirements",
    "Highlight transferable skills that match this specific position",
)

JOB_TITLES = (
    "Software Engineer",
    "Frontend Developer",
    "Full Stack Developer",
    "UI/UX Designer",
    "Product Manager",
    "Data Scientist",
    "DevOps Engineer",
    "Machine Learning Engineer",
    "Project Manager",
)
COMPANIES = (
    "TechCorp",
    "Innovate Solutions",
    "Digital Dynamics",
    "CodeWave",
    "DataSphere",
    "Nexus Technologies",
    "Quantum Computing",
    "Cyber Systems",
    "Cloud Solutions",
)
LOCATIONS = (
    "San Francisco, CA",
    "New York, NY",
    "Austin, TX",
    "Seattle, WA",
    "Boston, MA",
    "Chicago, IL",
    "Remote",
    "Los Angeles, CA",
    "Denver, CO",
)
SALARY_RANGES = (
    "$80,000 - $100,000",
    "$90,000 - $120,000",
    "$100,000 - $130,000",
    "$110,000 - $140,000",
    "$120,000 - $150,000",
    "$130,000 - $160,000",
)

# (low, high) jitter added to the length-derived base score per category.
SCORE_JITTER = {
    "overall_score": (-5, 10),
    "ats_compatibility": (-10, 15),
    "keyword_optimization": (-8, 12),
    "experience_relevance": (-7, 13),
}

SAMPLE_RESUME = """JOHN DOE
Software Engineer
john.doe@example.com | (123) 456-7890 | San Francisco, CA

PROFESSIONAL SUMMARY
Experienced software engineer with 5+ years developing web applications using React, Node.js, and TypeScript. Passionate about creating intuitive user interfaces and optimizing application performance.

SKILLS
• Programming: JavaScript, TypeScript, Python, HTML, CSS
• Frameworks: React, Node.js, Express, Next.js
• Tools: Git, Docker, AWS, CI/CD pipelines
• Soft Skills: Communication, Problem-solving, Team collaboration

WORK EXPERIENCE
Senior Software Engineer
TechCorp Inc. | Jan 2021 - Present
• Developed and maintained multiple client-facing applications using React and TypeScript
• Implemented responsive designs and optimized application performance
• Collaborated with cross-functional teams to deliver features on schedule

Software Engineer
Web Solutions LLC | Mar 2018 - Dec 2020
• Built RESTful APIs using Node.js and Express
• Integrated third-party services and payment gateways
• Mentored junior developers and conducted code reviews

EDUCATION
Bachelor of Science in Computer Science
University of Technology | Graduated 2018
"""


def base_score(resume_text: str) -> int:
    """Length is only a stand-in quality signal; longer resumes land higher in [40, 75]."""
    return min(75, max(40, len(resume_text or "") // 100))


class MockGenerator:
    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    def mock_analyze(self, resume_text: str, job_description: str | None = None) -> AnalysisResult:
        base = base_score(resume_text)
        scores = {
            field: base + self._rng.randint(low, high)
            for field, (low, high) in SCORE_JITTER.items()
        }
        recommendations = list(BASE_RECOMMENDATIONS)
        if job_description and job_description.strip():
            recommendations = [*JOB_DESCRIPTION_RECOMMENDATIONS, *recommendations]
        return AnalysisResult(**scores, recommendations=recommendations[:MOCK_RECOMMENDATION_LIMIT])

    def mock_match(self, resume_text: str) -> list[JobMatch]:
        today = date.today()
        return [
            JobMatch(
                id=f"mock-job-{index}",
                title=self._rng.choice(JOB_TITLES),
                company=self._rng.choice(COMPANIES),
                location=self._rng.choice(LOCATIONS),
                salary=self._rng.choice(SALARY_RANGES),
                posted_date=(today - timedelta(days=self._rng.randint(0, 29))).isoformat(),
                match_score=self._rng.randint(65, 95),
            )
            for index in range(1, MOCK_MATCH_COUNT + 1)
        ]

    def mock_extract_text(self, file_bytes: bytes, mime_type: str) -> str:
        header = f"Resume extracted from {mime_type or 'unknown'} file ({len(file_bytes or b'')} bytes)."
        return f"{header}\n\n{SAMPLE_RESUME}"
