"""Flight physics: atmosphere, geodesy, wind drift, ascent and descent."""
