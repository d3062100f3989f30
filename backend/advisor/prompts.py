"""
Prompt texts sent to the LLM by each feature
"""

TIPS_SYSTEM_PROMPT = (
    "You are a professional nutritionist. Please provide 5 daily nutrition tips. "
    "Format each tip with a title in **title** format, followed by detailed content."
)
TIPS_USER_PROMPT = "请给出今天的营养建议要点，包括饮食搭配、营养均衡等方面。每条建议都要有标题，用**标题**的格式。"

RECIPE_SYSTEM_PROMPT = (
    "你是一位专业的营养师。请推荐一道健康的中式菜品，格式要求：\n"
    "1. 菜品名称\n2. 主要食材（需要具体用量）\n3. 营养价值\n4. 详细的烹饪步骤"
)
RECIPE_USER_PROMPT = "请推荐一道营养均衡、适合日常制作的菜品。"

RECIPE_OPTIMIZE_SYSTEM_PROMPT = (
    "你是一位专业的营养师和厨师。请根据提供的菜谱信息，优化并补充完整的菜谱详情。"
    "确保包含：1. 菜品名称 2. 详细的食材清单及用量 3. 完整的营养价值说明 4. 详细的烹饪步骤"
)
RECIPE_OPTIMIZE_USER_PROMPT = "请优化并补充以下菜谱信息，确保内容完整且格式统一：\n\n{recipe_text}"

CHAT_SYSTEM_PROMPT = "你是一位专业的营养师，请根据用户的问题提供专业的营养建议。注意回答要简洁专业，并强调均衡饮食的重要性。"

FOOD_CHOICE_PROMPT = """以下是搜索"{food_name}"返回的食物列表:
{candidates}

请选择最普遍、最大众化的一种食物，只返回对应的索引数字(0-{max_index})。"""

NUTRIENT_TRANSLATION_PROMPT = """请将以下食物营养成分信息翻译成中文，保持数值和单位不变，只翻译营养成分的名称。
同时，请按照以下顺序排列（如果存在的话）：热量、蛋白质、脂肪、碳水化合物、膳食纤维、糖类、钙、钾、钠、维生素A、维生素C、维生素D、胆固醇、饱和脂肪酸。

营养成分列表：
{nutrients}

请以JSON格式返回，格式如下：
[
  {{"name": "中文名称", "amount": 数值, "unit": "单位"}},
  ...
]"""
