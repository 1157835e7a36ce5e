"""Static tables consumed by the strategy generator."""

from typing import Dict, List

PLATFORMS: Dict[str, Dict] = {
    "pinterest": {
        "name": "Pinterest",
        "strengths": ["Visual content", "DIY tutorials", "Product discovery"],
        "content_types": ["Infographics", "Step-by-step guides", "Product showcases"],
        "best_practices": [
            "Use vertical 2:3 images with text overlays",
            "Write keyword-rich pin titles and descriptions",
            "Group pins into niche-specific boards",
        ],
    },
    "tiktok": {
        "name": "TikTok",
        "strengths": ["Short-form video", "Viral potential", "Young audience"],
        "content_types": ["Tutorials", "Product reviews", "Trending challenges"],
        "best_practices": [
            "Hook viewers in the first two seconds",
            "Use trending sounds where they fit the topic",
            "Put the affiliate link in the bio, not the caption",
        ],
    },
    "twitter": {
        "name": "X (Twitter)",
        "strengths": ["News sharing", "Conversation", "Link sharing"],
        "content_types": ["Tips threads", "News commentary", "Resource sharing"],
        "best_practices": [
            "Lead threads with a concrete promise",
            "Reply to larger accounts in the niche",
            "Limit link posts to one in five tweets",
        ],
    },
}

# Platform fit per niche, 0 (useless) to 10 (ideal).
DEFAULT_PLATFORM_FIT = 5.0
PLATFORM_NICHE_FIT: Dict[str, Dict[str, float]] = {
    "pinterest": {
        "Survival & Emergency Preparedness": 7.0,
        "DIY & Home Improvement": 9.0,
        "Personal Finance & Making Money Online": 6.0,
        "E-Learning & Skill-Building": 5.0,
        "AI & Automation Tools": 4.0,
    },
    "tiktok": {
        "Survival & Emergency Preparedness": 8.0,
        "DIY & Home Improvement": 8.0,
        "Personal Finance & Making Money Online": 8.0,
        "E-Learning & Skill-Building": 6.0,
        "AI & Automation Tools": 7.0,
    },
    "twitter": {
        "Survival & Emergency Preparedness": 4.0,
        "DIY & Home Improvement": 3.0,
        "Personal Finance & Making Money Online": 7.0,
        "E-Learning & Skill-Building": 6.0,
        "AI & Automation Tools": 9.0,
    },
}

# (minimum effectiveness, posts per week), checked top down.
POSTING_FREQUENCY_STEPS = [(8.0, 7), (6.0, 5), (4.0, 3), (0.0, 1)]

AFFILIATE_NETWORKS: Dict[str, List[Dict[str, str]]] = {
    "Survival & Emergency Preparedness": [
        {"name": "Amazon Associates", "commission_range": "3-4%", "focus": "Gear and food storage"},
        {"name": "ShareASale", "commission_range": "5-15%", "focus": "Specialist preparedness brands"},
    ],
    "DIY & Home Improvement": [
        {"name": "Amazon Associates", "commission_range": "3-8%", "focus": "Tools and materials"},
        {"name": "Home Depot Affiliate Program", "commission_range": "1-8%", "focus": "Home improvement supplies"},
    ],
    "Personal Finance & Making Money Online": [
        {"name": "ClickBank", "commission_range": "30-75%", "focus": "Digital courses and guides"},
        {"name": "CJ Affiliate", "commission_range": "$25-200 per lead", "focus": "Financial products"},
    ],
    "E-Learning & Skill-Building": [
        {"name": "Udemy Affiliate Program", "commission_range": "10-15%", "focus": "Online courses"},
        {"name": "ClickBank", "commission_range": "30-75%", "focus": "Digital education products"},
    ],
    "AI & Automation Tools": [
        {"name": "PartnerStack", "commission_range": "20-30% recurring", "focus": "SaaS subscriptions"},
        {"name": "Impact", "commission_range": "15-30%", "focus": "Software tools"},
    ],
}
DEFAULT_AFFILIATE_NETWORKS = [
    {"name": "Amazon Associates", "commission_range": "1-10%", "focus": "General products"},
]

# Average order value (dollars) and commission rate used for sales targets.
NICHE_ECONOMICS: Dict[str, Dict[str, float]] = {
    "Survival & Emergency Preparedness": {"average_order_value": 80.0, "commission_rate": 0.06},
    "DIY & Home Improvement": {"average_order_value": 120.0, "commission_rate": 0.05},
    "Personal Finance & Making Money Online": {"average_order_value": 60.0, "commission_rate": 0.40},
    "E-Learning & Skill-Building": {"average_order_value": 50.0, "commission_rate": 0.30},
    "AI & Automation Tools": {"average_order_value": 40.0, "commission_rate": 0.25},
}
DEFAULT_NICHE_ECONOMICS = {"average_order_value": 50.0, "commission_rate": 0.10}

CONTENT_TEMPLATES: Dict[str, List[str]] = {
    "blog": [
        "The complete beginner's guide to {keyword}",
        "{keyword}: 7 mistakes to avoid",
    ],
    "social": [
        "5 quick {keyword} tips you can use today",
        "{keyword} myths vs facts",
    ],
    "video": [
        "{keyword} explained in 60 seconds",
        "I tested the top {keyword} products so you don't have to",
    ],
}
MAX_CONTENT_IDEAS = 12
HOURS_PER_POST = 1.5
POSTING_DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# income_share: fraction of goal income reached at the end of the phase.
TIMELINE_PHASES: List[Dict] = [
    {
        "name": "Research & Setup",
        "duration": 7,
        "income_share": 0.0,
        "tasks": [
            "Set up accounts on all target platforms",
            "Research top affiliate programs in target niches",
            "Join affiliate networks",
            "Set up tracking system for affiliate links",
            "Create content calendar",
        ],
    },
    {
        "name": "Content Creation",
        "duration": 21,
        "income_share": 0.0,
        "tasks": [
            "Create initial content for each platform",
            "Develop templates for recurring content",
            "Create affiliate product reviews",
            "Optimize content with trending keywords",
            "Prepare content batches for consistent posting",
        ],
    },
    {
        "name": "Launch & Promotion",
        "duration": 14,
        "income_share": 0.05,
        "tasks": [
            "Begin posting content according to schedule",
            "Engage with audience and respond to comments",
            "Implement cross-platform promotion strategy",
            "Monitor initial performance metrics",
            "Adjust content based on early feedback",
        ],
    },
    {
        "name": "Optimization & Scaling",
        "duration": 30,
        "income_share": 0.4,
        "tasks": [
            "Analyze performance data across platforms",
            "Double down on high-performing content types",
            "Expand to additional keywords and products",
            "Reinvest initial earnings into paid promotion",
            "Scale successful strategies",
        ],
    },
    {
        "name": "Income Growth",
        "duration": 18,
        "income_share": 1.0,
        "tasks": [
            "Implement advanced affiliate strategies",
            "Negotiate higher commission rates with partners",
            "Develop multiple income streams within niches",
            "Create systems for semi-automated content creation",
            "Expand to additional profitable niches",
        ],
    },
]

WEEKLY_ACTIVITY_SPLIT: Dict[str, float] = {
    "content_creation": 0.5,
    "engagement": 0.2,
    "research": 0.15,
    "analytics": 0.15,
}

OPPORTUNITY_WEIGHTS: Dict[str, float] = {"high": 30.0, "medium": 20.0, "low": 10.0}
UNKNOWN_OPPORTUNITY_WEIGHT = 15.0

ZERO_INVESTMENT_STRATEGIES: List[str] = [
    "Publish organic content on every chosen platform",
    "Use free design tools for pins and thumbnails",
    "Join free affiliate programs before paid ones",
    "Repurpose each long-form piece into short-form posts",
    "Collaborate with creators of similar size",
]

BUDGET_SCALING_TIERS: List[Dict] = [
    {"monthly_income": 0.0, "reinvest_share": 0.0, "focus": "Organic growth only"},
    {"monthly_income": 0.1, "reinvest_share": 0.5, "focus": "Promote best-performing content"},
    {"monthly_income": 0.5, "reinvest_share": 0.3, "focus": "Paid traffic to proven offers"},
    {"monthly_income": 1.0, "reinvest_share": 0.2, "focus": "Outsource content production"},
]
