from typing import Any

from domain.models import Recipe


PREAMBLE = """
あなたは三ツ星レストランで働く世界最高峰のアヴァンギャルドなパティシエです。
ユーザーの入力をもとに、斬新で創造的、そして視覚的に素晴らしいデザートを考案してください。

基本ルール:
1. 普通のケーキではなく、脱構築、分子ガストロノミー、ユニークな食感、芸術的な盛り付けを意識してください。
2. 説明はお客様に分かりやすく、かつ魅力的な日本語で書いてください。
3. 通貨は日本円（円）を使用してください。
4. imagePrompt は完成品の高品質な写真のための詳細な英語で書いてください。
5. steps の visualDescription は、レシピ本の挿絵のようなシンプルな手書きスケッチを描くための英語の指示にしてください。""".strip()

PRICING = """
【重要：価格設定の制約】
以下の価格設定を守ってレシピを考案してください：
{targets}
価格に見合った材料選びと手間のかけ方に調整してください。"""

REFINE = """
あなたは今、既存のレシピを改良（アレンジ）しています。
前回のレシピの良さを活かしつつ、新しい要望（追加キーワード）を取り入れてレシピを進化させてください。"""

CREATE_USER_PROMPT = (
    "以下のキーワードを使って、ユニークなデザートのコンセプトを創り出してください: {keywords}"
)

REFINE_USER_PROMPT = """
【元になるレシピ】
名前: {name}
特徴: {description}
構成: {flavor_profile}

【追加の要望・キーワード】
{keywords}

上記の元のレシピをベースに、追加の要望を取り入れた新しいレシピを作成してください。""".strip()

PHOTO_STYLE = (
    " Professional food photography, 8k resolution, soft studio lighting,"
    " macro shot, highly detailed, appetizing, cinematic depth of field."
)

SKETCH_STYLE = (
    "Black and white pencil sketch, hand-drawn technical illustration,"
    " cookbook style, simple lines, white background, minimalist, high contrast."
)

RECIPE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "name": {
            "type": "STRING",
            "description": "スイーツの優雅な名前（フランス語または英語）。日本語の読み仮名も添える。",
        },
        "description": {
            "type": "STRING",
            "description": "このスイーツの魅力を伝える、詩的で食欲をそそる日本語の説明文。",
        },
        "ingredients": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "正確な分量を含む材料リスト（日本語）。",
        },
        "steps": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "instruction": {
                        "type": "STRING",
                        "description": "工程の詳細な日本語説明。",
                    },
                    "visualDescription": {
                        "type": "STRING",
                        "description": (
                            "この工程の手書き風スケッチのための英語の描写"
                            "（例：'Sketch of a hand whisking egg whites in a bowl'）。"
                        ),
                    },
                },
                "required": ["instruction", "visualDescription"],
            },
            "description": "ステップバイステップの作り方と、その視覚的描写。",
        },
        "costPrice": {
            "type": "STRING",
            "description": "推定原価（円表記）。指定がある場合はそれに従う。",
        },
        "sellingPrice": {
            "type": "STRING",
            "description": "販売価格（円表記）。指定がある場合はそれに従う。",
        },
        "imagePrompt": {
            "type": "STRING",
            "description": (
                "完成写真用の非常に詳細な英語の画像生成プロンプト。"
                "照明、盛り付け、質感、マクロなディテールに焦点を当てる。"
            ),
        },
        "flavorProfile": {
            "type": "STRING",
            "description": "主な味の構成（例：'ほろ苦い、柑橘系、クリーミー'）。",
        },
    },
    "required": [
        "name",
        "description",
        "ingredients",
        "steps",
        "costPrice",
        "sellingPrice",
        "imagePrompt",
        "flavorProfile",
    ],
}


def build_pricing(
    cost_constraint: str | None = None,
    price_constraint: str | None = None,
) -> str:
    targets: list[str] = []
    if cost_constraint:
        targets.append(f"- 目標原価: {cost_constraint}前後")
    if price_constraint:
        targets.append(f"- 目標売値: {price_constraint}前後")
    if not targets:
        return ""
    return PRICING.format(targets="\n".join(targets))


def photo_prompt(prompt: str) -> str:
    return prompt + PHOTO_STYLE


def sketch_prompt(prompt: str) -> str:
    return f"{prompt}. {SKETCH_STYLE}"


class CreateSweetPrompt:
    """The system instruction and user message for one recipe request.

    With a `previous_recipe` the request is framed as a refinement of that
    recipe rather than a fresh creation.
    """

    def __init__(
        self,
        keywords: str,
        *,
        cost_constraint: str | None = None,
        price_constraint: str | None = None,
        previous_recipe: Recipe | None = None,
        preamble: str | None = None,
    ) -> None:
        self.keywords = keywords.strip()
        self.cost_constraint = cost_constraint
        self.price_constraint = price_constraint
        self.previous_recipe = previous_recipe
        self.preamble = PREAMBLE if preamble is None else preamble

    @property
    def refining(self) -> bool:
        return self.previous_recipe is not None

    @property
    def system_instruction(self) -> str:
        s = self.preamble
        pricing = build_pricing(self.cost_constraint, self.price_constraint)
        if pricing:
            s += "\n" + pricing
        if self.refining:
            s += "\n" + REFINE
        return s

    @property
    def user_prompt(self) -> str:
        if self.previous_recipe is None:
            return CREATE_USER_PROMPT.format(keywords=self.keywords)
        return REFINE_USER_PROMPT.format(
            name=self.previous_recipe.name,
            description=self.previous_recipe.description,
            flavor_profile=self.previous_recipe.flavor_profile,
            keywords=self.keywords,
        )

    def __str__(self) -> str:
        return f"{self.system_instruction}\n\n{self.user_prompt}"
