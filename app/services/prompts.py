# Prompt templates and provider payloads for each IELTS task
from typing import Any, Dict, List

from app.core.config import Settings

JSON_OBJECT_FORMAT = {"type": "json_object"}

TRANSCRIPTION_QUESTION = (
    "Output a transcription of this handwritten text. Do not make any grammatical corrections from your side. "
    "However, do insert any missing punctuations. Your output is going to be a single block of text of 4 or 5 "
    "paragraphs separated by a blank line (line breaks)."
)


def essay_criteria_prompt(topic: str, essay: str) -> str:
    return f"I will give your an IELTS Essay topic along with the student's full response to it. You are going to provide detailed feedback to this essay in the exact specified format. Your output is going to be a 5 object json:\n\n\nCC (stands for Coherence and Cohesion)\nTA (stands for Task Achievement)\nLR (stands for Lexical Resource)\nGRA (stands for Grammatical Range and Accuracy)\nOverall\n\nThe first four objects here are going to hold 3 keys each: 'score' , 'explanation', and 'examples'.\n\n\nThe 'score' is going to hold a numerical value from 0 to 9 representing the band score.\nThe 'explanation' is going to be a 2-3 sentence explanation for why that score was given. This part should not mention any specific examples.\nThe 'examples' is going to include an array providing specific examples from the essay response quoting verbatim the part from the essay that illistrates the explanation mentioned in the 'explanation' part. The example array should always have the quote followed by a description of the issue. Do no create separate entries for quote and description please. \n\nThe overall is simply a sum of the four 'scores' divided by four.\n\nOne thing to keep in mind is that a score of 5 or less is to be given in any of the four criteria only in cases of essay being incomplete or text being incomprehensible. It is extremely rare for a student to not get at least a 6 on the 4 crtierias. \n\nHere is the essay topic with sample answer:\n\n{topic}\n\n{essay}"


def graph_criteria_prompt(topic: str, essay: str) -> str:
    return f"I will give your an IELTS graph (Academic Task 1) topic along with the student's full response to it. You are going to provide detailed feedback to this task in the exact specified format. Your output is going to be a 5 object json:\n\n\nCC (stands for Coherence and Cohesion)\nTA (stands for Task Achievement)\nLR (stands for Lexical Resource)\nGRA (stands for Grammatical Range and Accuracy)\nOverall\n\nThe first four objects here are going to hold 3 keys each: 'score' , 'explanation', and 'examples'.\n\n\nThe 'score' is going to hold a numerical value from 0 to 9 representing the band score.\nThe 'explanation' is going to be a 2-3 sentence explanation for why that score was given. This part should not mention any specific examples.\nThe 'examples' is going to include an array providing specific examples from the graph response quoting verbatim the part from the graph that illustrates the explanation mentioned in the 'explanation' part. The example array should always have the quote followed by a description of the issue. Do no create separate entries for quote and description please. \n\nThe overall is simply a sum of the four 'scores' divided by four.\n\nOne thing to keep in mind is that a score of 5 or less is to be given in any of the four criteria only in cases of graph being incomplete or text being incomprehensible. It is extremely rare for a student to not get at least a 6 on the 4 crtierias. \n\nHere is the graph topic with sample answer:\n\n{topic}\n\n{essay}\n\nNote: Do not prefix your response with anything. Your output must be a pure json in the suggested schema."


def letter_criteria_prompt(topic: str, essay: str) -> str:
    return f"I will give your an IELTS letter topic along with the student's full response to it. You are going to provide detailed feedback to this task in the exact specified format. Your output is going to be a 5 object json:\n\n\nCC (stands for Coherence and Cohesion)\nTA (stands for Task Achievement)\nLR (stands for Lexical Resource)\nGRA (stands for Grammatical Range and Accuracy)\nOverall\n\nThe first four objects here are going to hold 3 keys each: 'score' , 'explanation', and 'examples'.\n\n\nThe 'score' is going to hold a numerical value from 0 to 9 representing the band score.\nThe 'explanation' is going to be a 2-3 sentence explanation for why that score was given. This part should not mention any specific examples.\nThe 'examples' is going to include an array providing specific examples from the letter response quoting verbatim the part from the letter that illistrates the explanation mentioned in the 'explanation' part. The example array should always have the quote followed by a description of the issue. Do no create separate entries for quote and description please. \n\nThe overall is simply a sum of the four 'scores' divided by four.\n\nOne thing to keep in mind is that a score of 5 or less is to be given in any of the four criteria only in cases of letter being incomplete or text being incomprehensible. It is extremely rare for a student to not get at least a 6 on the 4 crtierias. \n\nHere is the letter topic with sample answer:\n\n{topic}\n\n{essay}"


def grammar_prompt(essay: str) -> str:
    return f"Output a grammatically corrected version of this text. Your output should not include anything before or after. Only the corrected grammatical version is expected.\n\nHere is the text:\n\n{essay}"


def essay_improvement_prompt(essay: str) -> str:
    return f"I want you to write a sentence by sentence improved rephrase for this essay excluding the first and last paragraph. Your output should be an unstyled <table> element (do not wrap it in code block) with left column being 'Your Sentence' and right one 'Improved Sentence'. Each row should be a single sentence from the essay - the original one and the improved. Obviosuly, there are going to be as many rows as the sentences in main body paragraphs.\n\n\nHere is the full essay response:\n\n{essay}"


def graph_improvement_prompt(topic: str, essay: str) -> str:
    return f"I want you to write a sentence by sentence improved rephrase for this graph excluding the initial salutation and closing remarks. Your output should be an unstyled <table> element (do not wrap it in code block) with left column being 'Your Sentence' and right one 'Improved Sentence'. Each row should be a single sentence from the graph - the original one and the improved. Obviosuly, there are going to be as many rows as the sentences. \n\n  Here is the topic:\n  {topic}\n\nHere is the full graph response:\n\n{essay}"


def letter_improvement_prompt(topic: str, essay: str) -> str:
    return f"I want you to write a sentence by sentence improved rephrase for this letter excluding the initial salutation and closing remarks. Your output should be an unstyled <table> element (do not wrap it in code block) with left column being 'Your Sentence' and right one 'Improved Sentence'. Each row should be a single sentence from the letter - the original one and the improved. Obviosuly, there are going to be as many rows as the sentences. The most important thing - your improvements must align with the tone of the letter. Do not suggest formal sentences for informal letter topic or informal sentences for formal.\n\n  Here is the topic:\n  {topic}\n\nHere is the full letter response:\n\n{essay}"


def chat_payload(model: str, prompt: str, expect_json: bool = False) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "model": model,
        "messages": [{"role": "user", "content": prompt}],
    }
    if expect_json:
        payload["response_format"] = JSON_OBJECT_FORMAT
    return payload


def transcription_payload(settings: Settings, image_urls: List[str]) -> Dict[str, Any]:
    content: List[Dict[str, Any]] = [{"type": "text", "text": TRANSCRIPTION_QUESTION}]
    content.extend({"type": "image_url", "image_url": {"url": url}} for url in image_urls)
    return {
        "model": settings.transcription_model,
        "messages": [{"role": "user", "content": content}],
        "max_tokens": settings.transcription_max_tokens,
    }
