"""
Banroom - esports bracket and map-ban backend

Responsibilities:
- Bracket registry (initialize, record winners, advance rounds)
- Rooms binding a bracket match to a turn-based map ban
- Side selection after the ban phase
- User accounts, team rosters and profiles
- Event publishing for live clients
"""
