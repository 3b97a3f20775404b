"""DDL for the goal tables: applied on startup when AUTO_CREATE_SCHEMA is set.

goals.progress / goals.status are a cache of the aggregator's output.
activities cascade from goals; goal_categories are looked up by name only,
so deleting one leaves goals holding the old string.
"""

from __future__ import annotations

STATEMENTS: list[str] = [
    'CREATE EXTENSION IF NOT EXISTS "pgcrypto"',
    """
    CREATE TABLE IF NOT EXISTS public.goals (
        id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
        user_id UUID NOT NULL,
        title TEXT NOT NULL,
        category TEXT NOT NULL,
        priority TEXT CHECK (priority IN ('High', 'Medium', 'Low')) NOT NULL DEFAULT 'Medium',
        description TEXT,
        progress INTEGER NOT NULL DEFAULT 0,
        status TEXT CHECK (status IN ('Not Started', 'In Progress', 'Completed')) DEFAULT 'Not Started',
        deadline DATE,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT now() NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS public.activities (
        id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
        goal_id UUID REFERENCES public.goals(id) ON DELETE CASCADE NOT NULL,
        name TEXT NOT NULL,
        is_completed BOOLEAN DEFAULT false NOT NULL,
        frequency TEXT CHECK (frequency IN ('Daily', 'Weekly', 'Monthly', 'Once')),
        last_completed_at TIMESTAMP WITH TIME ZONE,
        deadline DATE,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT now() NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS public.goal_categories (
        id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
        user_id UUID NOT NULL,
        name TEXT NOT NULL,
        color TEXT DEFAULT '#3b82f6',
        is_default BOOLEAN DEFAULT false,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT now()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_activities_goal_id ON public.activities(goal_id)",
    "CREATE INDEX IF NOT EXISTS idx_goals_user_id ON public.goals(user_id)",
]
