from app.ai.types import ChatMessage

PROBE_PROMPT = "Respond with the word 'online' if you can read this."

_ANALYST_SYSTEM = (
    "You are an expert resume analyst with deep expertise in Applicant Tracking Systems (ATS) "
    "and recruiting. Your analysis must be specific to the actual content in the resume, not generic "
    "advice. Focus on concrete, actionable feedback based on the exact skills, experiences, and "
    "formatting in the provided document. Respond with JSON only."
)

_ANALYSIS_FORMAT = (
    "Format your response as a JSON object with these properties: overallScore, atsCompatibility, "
    "keywordOptimization, experienceRelevance (integers from 0 to 100), recommendations "
    "(an array of 5-7 strings)."
)

_MATCHER_SYSTEM = (
    "You are an AI job matching specialist with expertise in career services and talent acquisition. "
    "Generate job matches based only on the candidate's actual skills, experience, education and "
    "career trajectory. Respond with JSON only."
)

EXTRACT_SYSTEM = (
    "You are an expert resume parser. Extract and organize all relevant information from the uploaded "
    "resume document. Format the text to preserve structure and key details."
)

EXTRACT_INSTRUCTION = (
    "Extract all text and information from this resume. Preserve the structure and formatting where "
    "relevant. Include all contact information, work experience, skills, education, and any other "
    "sections present."
)


def build_analysis_messages(resume_text: str, job_description: str | None = None) -> list[ChatMessage]:
    job_description = (job_description or "").strip()
    if job_description:
        user = (
            f"Resume:\n{resume_text}\n\nJob Description:\n{job_description}\n\n"
            "Analyze how well this exact resume matches this specific job description:\n"
            "1. Overall match score (0-100): skill overlap, experience relevance, qualification match\n"
            "2. ATS compatibility score (0-100): formatting, keyword usage, parse-ability\n"
            "3. Keyword optimization score (0-100): use of key terms from the job description\n"
            "4. Experience relevance score (0-100): relevance of the candidate's experience to this role\n\n"
            "Provide 5-7 specific, actionable recommendations that address gaps between this resume "
            "and the job description.\n\n"
            f"{_ANALYSIS_FORMAT}"
        )
    else:
        user = (
            f"Resume:\n{resume_text}\n\n"
            "Analyze this exact resume:\n"
            "1. Overall quality score (0-100): content strength, organization, impact\n"
            "2. ATS compatibility score (0-100): formatting, keyword usage, parse-ability\n"
            "3. Keyword optimization score (0-100): use of industry and role keywords\n"
            "4. Experience relevance score (0-100): presentation of experience for the apparent target roles\n\n"
            "Provide 5-7 specific, actionable recommendations that reference content in the resume.\n\n"
            f"{_ANALYSIS_FORMAT}"
        )
    return [
        ChatMessage(role="system", content=_ANALYST_SYSTEM),
        ChatMessage(role="user", content=user),
    ]


def build_match_messages(resume_text: str) -> list[ChatMessage]:
    user = (
        f"Resume:\n{resume_text}\n\n"
        "Generate 5 realistic job matches based only on the skills, experience and qualifications in "
        "this resume. For each job provide a specific title at the candidate's level, a realistic "
        "company name, a match score (0-100), a location, a salary range and a posted date within "
        "the last 30 days (YYYY-MM-DD).\n\n"
        "Format the response as a JSON object with a 'jobs' array containing objects with these "
        "properties: id, title, company, matchScore, location, salary, postedDate. Order the jobs "
        "from most to least relevant."
    )
    return [
        ChatMessage(role="system", content=_MATCHER_SYSTEM),
        ChatMessage(role="user", content=user),
    ]
