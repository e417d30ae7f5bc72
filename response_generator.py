"""
Response generation: rotating phrasing templates (pt/es) and the assembled
reply text for every response type.

Template choice goes through pick_variant on the turn's working session, so
a family never repeats one of its last three variants for the same session.
"""

from typing import Dict, List, Optional

from app_config import MAX_LISTED_ITEMS
from core.session import SessionState, pick_variant
from models import CatalogItem, DialogueDecision, QuerySignal, ResponseType
from services.product_formatter import format_listing

TEMPLATES: Dict[str, Dict[str, List[str]]] = {
    "pt": {
        "results_intro": [
            "Encontrei {count} opção(ões) de {subject} pra você 👇",
            "Olha só o que separei de {subject}: {count} resultado(s) 👇",
            "Boa escolha! Achei {count} resultado(s) para {subject}.",
            "Aqui estão {count} opção(ões) de {subject} que combinam com o que você pediu:",
            "Dá uma olhada nessas {count} oferta(s) de {subject} 👇",
        ],
        "not_found": [
            "Não encontrei {subject} com esses critérios. 😕",
            "Poxa, não achei resultados para {subject} agora.",
            "Hmm, nada de {subject} por aqui no momento.",
            "Procurei bastante, mas não encontrei {subject} com esse filtro.",
            "Ainda não temos {subject} que batam com o que você pediu.",
        ],
        "clarification": [
            "{question}",
            "Me ajuda a te ajudar: {question}",
            "Só pra eu acertar na busca: {question}",
            "Rapidinho: {question}",
            "Pra encontrar o melhor pra você: {question}",
        ],
        "cross_sell": [
            "Aproveita e dá uma olhada também em {items}.",
            "Quer completar com {items}?",
            "Muita gente leva junto: {items}.",
            "Posso te mostrar {items} também?",
            "Combina bem com {items}. Quer ver?",
        ],
        "greeting": [
            "Oi! 👋 Bora achar a melhor oferta pra você? Me diz o que procura.",
            "Olá! Sou seu assistente de compras. O que você quer encontrar hoje?",
            "E aí! 😄 Me conta o que você procura que eu garimpo aqui.",
            "Bem-vindo(a)! Posso buscar iPhone, perfume, tênis e muito mais.",
            "Oi, tudo bem? Me fala o produto e a faixa de preço que eu encontro pra você.",
        ],
        "thanks": [
            "Imagina! Se precisar de mais alguma coisa, é só chamar. 😉",
            "Por nada! Tô por aqui se quiser ver mais opções.",
            "Disponha! Quer procurar mais algum produto?",
            "Eu que agradeço! Boas compras! 🛍️",
            "Fico feliz em ajudar! Qualquer coisa, me chama.",
        ],
        "help": [
            "Eu te ajudo a encontrar produtos. Tenta algo como \"iphone 15 até 5000\" ou \"perfume mais barato\".",
            "É só me dizer o que procura: produto, marca, modelo ou faixa de preço. Ex.: \"tênis nike até 400\".",
            "Posso buscar produtos, comparar preços e mostrar os mais baratos ou os premium. O que você precisa?",
            "Funciona assim: você me diz o produto (ex.: \"drone\") e, se quiser, o preço (\"entre 1000 e 3000\").",
            "Me pergunta por qualquer produto! Também entendo \"mais barato\", \"mais caro\" e \"a partir de 200\".",
        ],
        "time": [
            "Agora são {time}. ⏰",
            "São {time} por aqui.",
            "Neste momento são {time}.",
            "Relógio marcando {time}! ⏰",
            "Agora é {time}. Posso te ajudar a achar algum produto?",
        ],
        "whoami": [
            "Sou o assistente de compras da loja. Te ajudo a achar os melhores produtos e preços. 🤖",
            "Sou um assistente virtual de vendas! Me diz o que procura que eu busco no catálogo.",
            "Eu sou o vendedor virtual daqui. Posso buscar produtos, filtrar por preço e sugerir acessórios.",
            "Sou um robô vendedor 😄 Conheço o catálogo inteiro e adoro achar uma boa oferta.",
            "Sou seu assistente de compras. Pergunta por um produto e eu mostro as opções.",
        ],
        "fallback": [
            "Não entendi muito bem. 🤔 Pode me dizer o produto que procura?",
            "Hmm, não captei. Me fala o nome do produto, tipo \"celular\" ou \"perfume\".",
            "Desculpa, não entendi. Quer buscar algum produto específico?",
            "Pode reformular? Me diz o produto e, se quiser, uma faixa de preço.",
            "Não consegui entender. Tenta algo como \"tênis até 300\". 😉",
        ],
    },
    "es": {
        "results_intro": [
            "Encontré {count} opción(es) de {subject} para ti 👇",
            "Mira lo que separé de {subject}: {count} resultado(s) 👇",
            "¡Buena elección! Encontré {count} resultado(s) para {subject}.",
            "Aquí tienes {count} opción(es) de {subject} que coinciden con lo que pediste:",
            "Échale un vistazo a estas {count} oferta(s) de {subject} 👇",
        ],
        "not_found": [
            "No encontré {subject} con esos criterios. 😕",
            "Uy, no encontré resultados para {subject} ahora.",
            "Mmm, no hay {subject} por aquí en este momento.",
            "Busqué bastante, pero no encontré {subject} con ese filtro.",
            "Todavía no tenemos {subject} que coincida con lo que pediste.",
        ],
        "clarification": [
            "{question}",
            "Ayúdame a ayudarte: {question}",
            "Para acertar en la búsqueda: {question}",
            "Rapidito: {question}",
            "Para encontrar lo mejor para ti: {question}",
        ],
        "cross_sell": [
            "Aprovecha y mira también {items}.",
            "¿Quieres completar con {items}?",
            "Mucha gente lleva también: {items}.",
            "¿Te muestro {items} también?",
            "Combina bien con {items}. ¿Quieres ver?",
        ],
        "greeting": [
            "¡Hola! 👋 ¿Buscamos la mejor oferta para ti? Dime qué necesitas.",
            "¡Hola! Soy tu asistente de compras. ¿Qué quieres encontrar hoy?",
            "¡Qué tal! 😄 Cuéntame qué buscas y lo encuentro.",
            "¡Bienvenido(a)! Puedo buscar iPhone, perfumes, zapatillas y mucho más.",
            "¡Hola! Dime el producto y el rango de precio y lo busco para ti.",
        ],
        "thanks": [
            "¡De nada! Si necesitas algo más, aquí estoy. 😉",
            "¡Con gusto! ¿Quieres ver más opciones?",
            "¡A la orden! ¿Buscamos otro producto?",
            "¡Gracias a ti! ¡Buenas compras! 🛍️",
            "¡Feliz de ayudar! Cualquier cosa, me avisas.",
        ],
        "help": [
            "Te ayudo a encontrar productos. Prueba algo como \"iphone 15 hasta 5000\" o \"perfume más barato\".",
            "Dime qué buscas: producto, marca, modelo o rango de precio. Ej.: \"zapatillas nike hasta 400\".",
            "Puedo buscar productos, comparar precios y mostrar los más baratos o los premium. ¿Qué necesitas?",
            "Funciona así: me dices el producto (ej.: \"drone\") y, si quieres, el precio (\"entre 1000 y 3000\").",
            "¡Pregúntame por cualquier producto! También entiendo \"más barato\", \"más caro\" y \"desde 200\".",
        ],
        "time": [
            "Ahora son las {time}. ⏰",
            "Son las {time} aquí.",
            "En este momento son las {time}.",
            "¡El reloj marca las {time}! ⏰",
            "Son las {time}. ¿Te ayudo a encontrar algún producto?",
        ],
        "whoami": [
            "Soy el asistente de compras de la tienda. Te ayudo a encontrar los mejores productos y precios. 🤖",
            "¡Soy un asistente virtual de ventas! Dime qué buscas y lo busco en el catálogo.",
            "Soy el vendedor virtual. Puedo buscar productos, filtrar por precio y sugerir accesorios.",
            "Soy un robot vendedor 😄 Conozco todo el catálogo y me encanta una buena oferta.",
            "Soy tu asistente de compras. Pregúntame por un producto y te muestro las opciones.",
        ],
        "fallback": [
            "No entendí muy bien. 🤔 ¿Me dices qué producto buscas?",
            "Mmm, no capté. Dime el nombre del producto, como \"celular\" o \"perfume\".",
            "Perdón, no entendí. ¿Quieres buscar algún producto específico?",
            "¿Puedes reformular? Dime el producto y, si quieres, un rango de precio.",
            "No logré entender. Prueba algo como \"zapatillas hasta 300\". 😉",
        ],
    },
}

MORE_RESULTS_LINE = {
    "pt": "…e mais {count} opção(ões) na lista.",
    "es": "…y {count} opción(es) más en la lista.",
}

SUGGESTION_LINE = {
    "pt": "Talvez te interesse: {items}.",
    "es": "Quizás te interese: {items}.",
}

DISPLAY_NAMES = {
    "iphone": "iPhone",
    "tv": "TV",
    "smart tv": "Smart TV",
    "ar condicionado": "ar-condicionado",
}

# Conversational rule name → template family
RULE_FAMILIES = {
    "greeting": "greeting",
    "thanks": "thanks",
    "help": "help",
    "time_query": "time",
    "whoami": "whoami",
}


def _templates(lang: str) -> Dict[str, List[str]]:
    return TEMPLATES.get(lang, TEMPLATES["pt"])


def display_name(term: Optional[str]) -> str:
    if not term:
        return ""
    return DISPLAY_NAMES.get(term, term)


def join_items(items: List[str], lang: str = "pt") -> str:
    """"a, b e c" (pt) / "a, b y c" (es)."""
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    conj = " y " if lang == "es" else " e "
    return ", ".join(items[:-1]) + conj + items[-1]


def query_subject(query: Optional[QuerySignal], lang: str = "pt") -> str:
    if query is None:
        return "produtos" if lang != "es" else "productos"
    if query.product and query.model:
        return f"{display_name(query.product)} {query.model}"
    for term in (query.product, query.category, query.brand, query.model):
        if term:
            return display_name(term)
    return "produtos" if lang != "es" else "productos"


def render(state: SessionState, family: str, lang: str = "pt", **values) -> str:
    """Pick the next non-repeating variant of *family* and fill placeholders."""
    variants = _templates(lang)[family]
    index = pick_variant(state, family, len(variants))
    return variants[index].format(**values)


def assemble_search_reply(
    state: SessionState,
    decision: DialogueDecision,
    query: QuerySignal,
    items: List[CatalogItem],
    lang: str = "pt",
    suggestions: Optional[List[str]] = None,
) -> str:
    subject = query_subject(query, lang)

    if decision.response_type == ResponseType.RESULTS:
        parts = [
            render(state, "results_intro", lang, count=len(items), subject=subject),
            format_listing(items, lang, MAX_LISTED_ITEMS),
        ]
        if len(items) > MAX_LISTED_ITEMS:
            parts.append(MORE_RESULTS_LINE.get(lang, MORE_RESULTS_LINE["pt"]).format(
                count=len(items) - MAX_LISTED_ITEMS))
        if decision.cross_sell:
            parts.append(render(state, "cross_sell", lang, items=join_items(decision.cross_sell, lang)))
        return "\n\n".join(parts)

    parts = [render(state, "not_found", lang, subject=subject)]
    if decision.ask_clarification:
        parts.append(render(state, "clarification", lang, question=decision.ask_clarification))
    if suggestions:
        names = [display_name(s) for s in suggestions]
        parts.append(SUGGESTION_LINE.get(lang, SUGGESTION_LINE["pt"]).format(items=join_items(names, lang)))
    return "\n\n".join(parts)


def assemble_conversational_reply(
    state: SessionState,
    rule_name: Optional[str],
    lang: str = "pt",
    now_text: str = "",
    suggestions: Optional[List[str]] = None,
) -> str:
    """Greeting, thanks, help, time and who-am-i replies; anything else gets the fallback."""
    family = RULE_FAMILIES.get(rule_name or "", "fallback")
    text = render(state, family, lang, time=now_text)
    if suggestions and family == "fallback":
        names = [display_name(s) for s in suggestions]
        text += "\n\n" + SUGGESTION_LINE.get(lang, SUGGESTION_LINE["pt"]).format(items=join_items(names, lang))
    return text


def assemble_clarification_reply(state: SessionState, decision: DialogueDecision, lang: str = "pt") -> str:
    return render(state, "clarification", lang, question=decision.ask_clarification or "")
