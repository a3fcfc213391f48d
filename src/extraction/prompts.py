"""
Prompt templates for CV extraction.
"""

from shared.models import JobOffer

SYSTEM_PROMPT = """You are an expert CV analyst and technical recruiter. Your task is to read a candidate's CV and extract its content as structured data.

Extract the information exactly as written in the CV. Do not invent employers, dates, degrees or skills that are not present.

Date rules:
- Use YYYY-MM-DD (use the first day of the month or year when only part is known)
- Use null when a date is unknown
- For a current position set "is_current": true and "end_date": null

IMPORTANT: Respond ONLY with valid JSON in the exact format specified. No other text."""


CV_SCHEMA = """{
  "personal_info": {
    "name": "string",
    "email": "string or null",
    "phone": "string or null",
    "location": "string or null",
    "linkedin": "string or null",
    "summary": "string or null"
  },
  "experience": [
    {
      "company": "string",
      "position": "string",
      "duration": "string",
      "start_date": "YYYY-MM-DD or null",
      "end_date": "YYYY-MM-DD or null",
      "responsibilities": ["string"],
      "technologies": ["string"],
      "is_current": boolean
    }
  ],
  "skills": ["string"],
  "education": [
    {
      "institution": "string",
      "degree": "string",
      "field": "string or null",
      "year": number or null,
      "grade": "string or null"
    }
  ],
  "certifications": [
    {
      "name": "string",
      "issuer": "string",
      "issue_date": "YYYY-MM-DD or null",
      "expiry_date": "YYYY-MM-DD or null",
      "credential_id": "string or null"
    }
  ],
  "languages": [
    {"name": "string", "level": "Basic|Intermediate|Advanced|Native"}
  ]
}"""


def build_extraction_prompt(cv_text: str, job_offer: JobOffer) -> str:
    """User prompt: reference job offer, CV text and the JSON schema to fill."""
    preferred = ""
    if job_offer.preferred_skills:
        preferred = f"\n**Preferred skills:** {', '.join(job_offer.preferred_skills)}"

    return f"""## Reference Job Offer:
**Title:** {job_offer.title}
**Required skills:** {', '.join(job_offer.required_skills)}
**Minimum experience:** {job_offer.min_experience_years} years{preferred}

**Description:**
{job_offer.description}

## CV to Analyze:
{cv_text}

## Task:
1. Extract personal information, experience, skills, education, certifications and languages
2. List every technical skill mentioned, including those inside experience entries
3. Keep skill names short and canonical (e.g. "Python", "SQL", "Kubernetes")

Respond in the following JSON format only:

{CV_SCHEMA}"""
