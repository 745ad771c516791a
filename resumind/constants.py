# constants.py
# Feedback schema handed to the model; the stored record keeps these key names.
AI_RESPONSE_FORMAT = """
      interface Feedback {
      overallScore: number; //max 100
      ATS: {
        score: number; //rate based on ATS suitability
        tips: {
          type: "good" | "improve";
          tip: string; //give 3-4 tips
        }[];
      };
      toneAndStyle: {
        score: number; //max 100
        tips: {
          type: "good" | "improve";
          tip: string; //make it a short "title" for the actual explanation
          explanation: string; //explain in detail here
        }[]; //give 3-4 tips
      };
      content: {
        score: number; //max 100
        tips: {
          type: "good" | "improve";
          tip: string; //make it a short "title" for the actual explanation
          explanation: string; //explain in detail here
        }[]; //give 3-4 tips
      };
      structure: {
        score: number; //max 100
        tips: {
          type: "good" | "improve";
          tip: string; //make it a short "title" for the actual explanation
          explanation: string; //explain in detail here
        }[]; //give 3-4 tips
      };
      skills: {
        score: number; //max 100
        tips: {
          type: "good" | "improve";
          tip: string; //make it a short "title" for the actual explanation
          explanation: string; //explain in detail here
        }[]; //give 3-4 tips
      };
    }"""

FEEDBACK_SECTIONS = ("toneAndStyle", "content", "structure", "skills")


def prepare_instructions(job_title: str, job_description: str, response_format: str = AI_RESPONSE_FORMAT) -> str:
    return (
        "You are an expert in ATS (Applicant Tracking System) and resume analysis. "
        "Analyze and rate this resume and suggest how to improve it. "
        "The rating can be low if the resume is bad. "
        "Be thorough and detailed. Point out mistakes and areas for improvement. "
        "If there is a lot to improve, do not hesitate to give low scores; this helps the user improve their resume. "
        "If provided, take the job description of the job the user is applying to into consideration "
        "to give more tailored feedback.\n"
        f"The job title is: {job_title or ''}\n"
        f"The job description is: {job_description or ''}\n"
        f"Provide the feedback using the following format: {response_format}\n"
        "Return the analysis as a JSON object, without any other text and without backticks. "
        "Do not include any other text or comments."
    )
