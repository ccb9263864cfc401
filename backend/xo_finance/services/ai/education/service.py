from __future__ import annotations

import logging
from typing import Optional

from xo_finance.core.errors import InvalidInput
from xo_finance.storage.document_store import DocumentStore

from ..common.pipeline import JSON_ONLY_RULE, generate_record, schema_instructions
from .contracts import ANCHOR_FIELD, MIN_MODULES, EducationTrackDraft

logger = logging.getLogger(__name__)

EDUCATION_PROMPT = """Você é um especialista em educação financeira e designer instrucional. Sua tarefa é criar o conteúdo completo para uma trilha educacional interativa sobre o tema: "{topic}".

A estrutura deve ser envolvente, começando com conceitos básicos e evoluindo para ações práticas e um quiz final.

Gere:
1. title: um título curto e impactante.
2. slug: slug para a URL (letras minúsculas, hifens, sem espaços).
3. description: descrição curta e motivadora para o card da trilha (máximo 2 frases).
4. icon: nome de um ícone da biblioteca lucide-react que represente o tema.
5. introduction: parágrafo de introdução explicando o que o usuário vai aprender, em markdown.
6. modules: de 3 a 5 módulos com tipos variados:
   - "narrative": introduza o conceito em "description" (markdown).
   - "psychology": 2-3 "points", cada um com "title" e "details".
   - "microHabits": 3 "habits" práticos.
   - "finalQuiz": 2-3 "questions" com "question", "options" (pelo menos 3) e "correct_answer" (texto exato de uma das opções).

O conteúdo deve ser claro, acionável e relevante para um público brasileiro."""


async def generate_education_track(
    topic: str,
    *,
    store: Optional[DocumentStore] = None,
    actor_id: Optional[str] = None,
) -> EducationTrackDraft:
    topic = (topic or "").strip()
    if not topic:
        raise InvalidInput("Informe o tema da trilha.")

    prompt = f"{EDUCATION_PROMPT.format(topic=topic)}\n\n{JSON_ONLY_RULE}\n\n{schema_instructions(EducationTrackDraft)}"
    draft = await generate_record(
        "education",
        prompt,
        EducationTrackDraft,
        anchor=ANCHOR_FIELD,
        store=store,
        actor_id=actor_id,
    )
    if len(draft.modules) < MIN_MODULES:
        # Short tracks are still usable; the admin reviews before publishing.
        logger.warning("Education track %r came back with only %d module(s)", draft.slug, len(draft.modules))
    return draft
