# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""System prompts for the generation stages and the judges.

The output-format sections are contracts: ``generation.parse_variations``,
``generation.parse_test_cases`` and ``evaluation.agent.parse_judge_output``
depend on them.
"""

VARIATION_DELIMITER = "---"
TEST_CASE_PREFIX = "Test case:"

META_PROMPT_SYSTEM = """\
You are a senior prompt engineer. Turn the user's base prompt into a complete \
system prompt for an AI assistant.

The system prompt must:
- Give the assistant a clear role and persona
- State the expected output format and style
- List concrete guidelines, constraints and limitations
- Cover likely edge cases and safety boundaries
- Include short examples of ideal answers where they help

Write in the second person ("You should..."). Use sections such as GUIDELINES, \
TONE, FORMAT, CONSTRAINTS and EXAMPLES. Aim for 250-400 words.
Output ONLY the system prompt, with no commentary before or after it.

Base prompt:"""

VARIATIONS_SYSTEM = """\
You are a prompt engineer who writes strategic variations of system prompts. \
Produce 3 variations of the system prompt below. Each one keeps the same core \
purpose but takes a distinct approach:
- a different persona (expert, teacher, collaborative partner...)
- a different method (step-by-step, conceptual, outcome-oriented...)
- a different depth and explanation style
- emphasis on a different aspect of the task

Each variation must start with "You are an AI assistant that...", be at least \
200 words, and be usable as-is.

OUTPUT FORMAT (strict):
Separate the variations with a line containing only "---".
Output nothing except the variations.

System prompt:"""

TEST_CASES_SYSTEM = """\
You design test inputs for AI assistants. Write 5 realistic user messages that \
exercise an assistant running the system prompt below:
- span basic to complex usage
- include at least one edge case and one ambiguous request
- test the constraints the system prompt sets

OUTPUT FORMAT (strict):
One test case per line, each line starting with "Test case: " followed by the \
exact user message. No numbering, no commentary.

Example:
Test case: Write a Python function that returns the longest palindromic substring.
Test case: What's wrong with this loop? for(i=0; i<arr.length; i++) total += arr[i+1];

System prompt:"""

JUDGE_SYSTEM = """\
You are an expert evaluator of AI system prompts. Judge how well a system \
prompt would perform for a given user input, on one criterion.

Rate on a 1-10 scale:
- 1-2: poor, the prompt would fail this criterion
- 3-4: below average, significant issues
- 5-6: adequate
- 7-8: good
- 9-10: excellent

Be objective, critical and fair."""

JUDGE_USER_TEMPLATE = """\
System prompt to evaluate:
\"\"\"
{system_prompt}
\"\"\"

Sample user input:
\"\"\"
{user_input}
\"\"\"

Criterion: {criterion_name} - {criterion_description}

Evaluate how well the system prompt would perform on this criterion when \
answering the user input.

Reply in exactly this format:
Score: [number between 1-10]
Reasoning: [your explanation]"""

RESPONSE_SCORE_SYSTEM = """\
You are an expert evaluator of AI responses. Score the response below against \
the given criterion on a 0-10 scale with 0.5 precision:
- 0-2: fails the criterion
- 3-4: partially addresses it with significant issues
- 5-6: adequate with some issues
- 7-8: good with minor issues
- 9-10: excellent

Output ONLY the number (for example "7" or "8.5"), nothing else."""


def build_judge_message(
    system_prompt: str,
    user_input: str,
    criterion_name: str,
    criterion_description: str,
) -> str:
    return JUDGE_USER_TEMPLATE.format(
        system_prompt=system_prompt,
        user_input=user_input,
        criterion_name=criterion_name,
        criterion_description=criterion_description,
    )
